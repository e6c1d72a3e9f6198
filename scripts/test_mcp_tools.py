#!/usr/bin/env python3
"""Exercise the project summary MCP tools against a running HTTP server.

Start the server first, for example:
    MCP_TRANSPORT=http MCP_PORT=8001 python -m backend.src.mcp.server
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
import uuid
from typing import Any, Dict

from fastmcp.client import Client, StreamableHttpTransport

TIER1_SAMPLE = {
    "file_structure": "backend/\n  src/\n  tests/",
    "tech_stack": "Python 3.12, FastAPI, SQLite",
    "patterns": "Service classes behind FastAPI routes and MCP tools",
    "commands": "uvicorn backend.src.api.main:app --reload",
    "architecture": "Single process with a SQLite store",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Test project summary MCP tools end-to-end")
    parser.add_argument(
        "--url",
        default=os.environ.get("MCP_URL", "http://127.0.0.1:8001/mcp"),
        help="MCP endpoint URL",
    )
    parser.add_argument(
        "--repository",
        default=f"mcp-test-{uuid.uuid4().hex[:12]}",
        help="Throwaway repository name to create during the test",
    )
    return parser


def _summarize(result: Any) -> Any:
    if result.structured_content is not None:
        return result.structured_content
    return [getattr(block, "text", str(block)) for block in result.content]


async def exercise_tools(url: str, repository: str) -> Dict[str, Any]:
    transport = StreamableHttpTransport(url=url)
    async with Client(transport, name="summary-audit") as client:
        results: Dict[str, Any] = {}

        tools = await client.list_tools()
        results["list_tools"] = [tool.name for tool in tools]

        create = await client.call_tool(
            "journal_create_project_summary",
            {"repository": repository, "sections": TIER1_SAMPLE, "current_commit": "0000000"},
        )
        results["create"] = _summarize(create)

        duplicate = await client.call_tool(
            "journal_create_project_summary",
            {"repository": repository, "sections": TIER1_SAMPLE},
        )
        results["create_duplicate"] = _summarize(duplicate)

        technical = await client.call_tool(
            "journal_update_technical_sections",
            {
                "repository": repository,
                "to_commit": "1111111",
                "sections": {"tech_stack": "Python 3.13, FastAPI, SQLite"},
                "agent_report": "Interpreter upgrade",
            },
        )
        results["update_technical"] = _summarize(technical)

        entry = await client.call_tool(
            "journal_create_entry",
            {
                "commit_hash": "1111111",
                "repository": repository,
                "date": "2025-01-15T14:30:00+00:00",
                "why": "Interpreter upgrade",
            },
        )
        results["create_entry"] = _summarize(entry)

        narrative = await client.call_tool(
            "journal_submit_summary_report",
            {"repository": repository, "sections": {"status": "Smoke test"}},
        )
        results["submit_report"] = _summarize(narrative)

        shallow = await client.read_resource(f"journal://summary/{repository}")
        results["shallow_view"] = json.loads(shallow[0].text)

        deep = await client.read_resource(f"journal://summary/{repository}/deep")
        deep_body = json.loads(deep[0].text)
        results["tech_stack_history"] = deep_body["sections"]["tech_stack"]["history"]

        listing = await client.call_tool("journal_list_project_summaries", {"limit": 5})
        results["list"] = _summarize(listing)

        return results


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    try:
        results = asyncio.run(exercise_tools(args.url, args.repository))
    except Exception as exc:  # pragma: no cover
        print(f"Error exercising MCP tools: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    json.dump(results, sys.stdout, indent=2, sort_keys=True, default=str)
    print()


if __name__ == "__main__":
    main()
