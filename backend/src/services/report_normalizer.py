"""Report normalizer - turns a free-form agent report into narrative sections.

The model is asked for one JSON object keyed by narrative section name, with an
empty string for every section the report says nothing new about. Empty values
are dropped before the result is handed back, so callers only ever see real
proposals.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from ..models.journal import JournalEntry
from ..models.settings import ModelProvider
from ..models.summary import ProjectSummary
from .config import AppConfig, get_config
from .projections import shallow_view
from .prompt_loader import PromptLoader, PromptLoaderError
from .section_schema import NARRATIVE_SECTIONS

logger = logging.getLogger(__name__)

NORMALIZE_PROMPT_PATH = "summary/normalize.md"


class ReportNormalizerError(Exception):
    """Raised when a report cannot be normalized."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NormalizedReport(BaseModel):
    """Narrative section proposals; "" means no update."""

    model_config = ConfigDict(extra="ignore")

    summary: str = ""
    purpose: str = ""
    key_decisions: str = ""
    technologies: str = ""
    status: str = ""
    extended_notes: str = ""

    def proposals(self) -> Dict[str, str]:
        return {
            name: value
            for name, value in self.model_dump().items()
            if value and value.strip()
        }


def _strip_code_fence(content: str) -> str:
    text = content.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_normalizer_output(content: str) -> Dict[str, str]:
    """Parse model output into ``{section_name: value}`` with empty values removed."""
    try:
        payload = json.loads(_strip_code_fence(content))
    except json.JSONDecodeError as exc:
        raise ReportNormalizerError(
            "Normalizer returned invalid JSON",
            {"content": content[:500]},
        ) from exc
    if not isinstance(payload, dict):
        raise ReportNormalizerError(
            "Normalizer returned JSON that is not an object",
            {"content": content[:500]},
        )
    try:
        report = NormalizedReport.model_validate(payload)
    except ValidationError as exc:
        raise ReportNormalizerError(
            "Normalizer output failed validation",
            {"errors": exc.errors(include_url=False)},
        ) from exc
    return report.proposals()


class ReportNormalizer:
    """LLM-backed normalization of summary reports."""

    OPENROUTER_API_BASE = "https://openrouter.ai/api/v1"
    GOOGLE_API_BASE = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(
        self,
        config: AppConfig | None = None,
        prompt_loader: PromptLoader | None = None,
    ):
        self.config = config or get_config()
        self.prompt_loader = prompt_loader or PromptLoader()

    def build_prompt(
        self,
        raw_report: str,
        existing: Optional[ProjectSummary],
        recent_entries: List[JournalEntry],
    ) -> str:
        current = shallow_view(existing) if existing else {}
        try:
            return self.prompt_loader.load(
                NORMALIZE_PROMPT_PATH,
                {
                    "repository": existing.repository if existing else "this project",
                    "existing_sections": [
                        (name, current.get(name)) for name in NARRATIVE_SECTIONS
                    ],
                    "recent_entries": recent_entries,
                    "raw_report": raw_report,
                    "section_names": list(NARRATIVE_SECTIONS),
                },
            )
        except PromptLoaderError as exc:
            raise ReportNormalizerError(str(exc)) from exc

    async def normalize(
        self,
        raw_report: str,
        existing: Optional[ProjectSummary],
        recent_entries: List[JournalEntry],
    ) -> Dict[str, str]:
        """Return narrative section proposals derived from ``raw_report``."""
        prompt = self.build_prompt(raw_report, existing, recent_entries)
        provider = self.config.normalizer_provider
        model = self.config.normalizer_model

        logger.info(
            "Normalizing summary report",
            extra={
                "provider": provider.value,
                "model": model,
                "report_chars": len(raw_report),
                "recent_entries": len(recent_entries),
            },
        )

        try:
            if provider == ModelProvider.GOOGLE:
                content = await self._call_google(model, prompt)
            else:
                content = await self._call_openrouter(model, prompt)
        except httpx.HTTPError as exc:
            logger.error(
                "Normalizer request failed",
                extra={"provider": provider.value, "error": str(exc)},
            )
            raise ReportNormalizerError(
                f"Normalizer request to {provider.value} failed: {exc}",
                {"provider": provider.value},
            ) from exc

        proposals = parse_normalizer_output(content)
        logger.debug("Normalizer proposals", extra={"sections": sorted(proposals)})
        return proposals

    async def _call_openrouter(self, model: str, prompt: str) -> str:
        api_key = self.config.openrouter_api_key
        if not api_key:
            raise ReportNormalizerError("No OpenRouter API key configured. Set OPENROUTER_API_KEY.")

        headers = {
            "Authorization": f"Bearer {api_key}",
            "X-Title": "Developer Journal",
            "Content-Type": "application/json",
        }

        async with httpx.AsyncClient(timeout=60.0) as client:
            response = await client.post(
                f"{self.OPENROUTER_API_BASE}/chat/completions",
                headers=headers,
                json={
                    "model": model,
                    "messages": [{"role": "user", "content": prompt}],
                    "max_tokens": 4000,
                    "temperature": 0.7,
                    "response_format": {"type": "json_object"},
                },
            )
            response.raise_for_status()
            data = response.json()

        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ReportNormalizerError("No response from OpenRouter") from exc

    async def _call_google(self, model: str, prompt: str) -> str:
        api_key = self.config.google_api_key
        if not api_key:
            raise ReportNormalizerError("No Google API key configured. Set GOOGLE_API_KEY.")

        gemini_model = model if model.startswith("models/") else f"models/{model}"
        url = f"{self.GOOGLE_API_BASE}/{gemini_model}:generateContent"

        async with httpx.AsyncClient(timeout=60.0) as client:
            response = await client.post(
                url,
                params={"key": api_key},
                json={
                    "contents": [{"parts": [{"text": prompt}]}],
                    "generationConfig": {
                        "maxOutputTokens": 4000,
                        "temperature": 0.7,
                        "responseMimeType": "application/json",
                    },
                },
            )
            response.raise_for_status()
            data = response.json()

        candidates = data.get("candidates", [])
        if not candidates:
            raise ReportNormalizerError("No response from Gemini")
        return candidates[0]["content"]["parts"][0]["text"]


# Singleton instance for dependency injection
_report_normalizer: ReportNormalizer | None = None


def get_report_normalizer() -> ReportNormalizer:
    """Get or create the report normalizer singleton."""
    global _report_normalizer
    if _report_normalizer is None:
        _report_normalizer = ReportNormalizer()
    return _report_normalizer


__all__ = [
    "ReportNormalizer",
    "ReportNormalizerError",
    "NormalizedReport",
    "parse_normalizer_output",
    "get_report_normalizer",
]
