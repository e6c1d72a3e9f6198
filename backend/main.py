"""Entry point for running the FastAPI application."""

import logging

import uvicorn
from dotenv import load_dotenv

load_dotenv()

from src.services.config import get_config

if __name__ == "__main__":
    config = get_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Can be overridden: PORT=7860 python main.py
    uvicorn.run(
        "src.api.main:app",
        host="0.0.0.0",
        port=config.port,
        reload=True,
    )
