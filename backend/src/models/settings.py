"""Model provider settings."""

from enum import Enum


class ModelProvider(str, Enum):
    """Available model providers."""
    OPENROUTER = "openrouter"
    GOOGLE = "google"


__all__ = ["ModelProvider"]
