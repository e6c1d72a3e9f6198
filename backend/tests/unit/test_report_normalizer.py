"""Tests for the LLM report normalizer."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from backend.src.models.journal import JournalEntry
from backend.src.models.settings import ModelProvider
from backend.src.models.summary import ProjectSummary, Section
from backend.src.services.config import AppConfig
from backend.src.services.prompt_loader import PromptLoader
from backend.src.services.report_normalizer import (
    ReportNormalizer,
    ReportNormalizerError,
    parse_normalizer_output,
)


@pytest.fixture
def existing() -> ProjectSummary:
    return ProjectSummary(
        id=1,
        repository="acme",
        schema_version=2,
        sections={"purpose": Section(current_value="Invoicing for freelancers")},
    )


@pytest.fixture
def entries():
    return [
        JournalEntry(
            commit_hash="abc1234",
            repository="acme",
            date="2025-03-01T12:00:00+00:00",
            why="Add Stripe payouts",
        )
    ]


class TestParseNormalizerOutput:
    def test_drops_empty_sections(self):
        content = json.dumps({"summary": "A billing app", "purpose": "", "status": "   "})

        assert parse_normalizer_output(content) == {"summary": "A billing app"}

    def test_ignores_non_narrative_keys(self):
        content = json.dumps({"status": "Beta", "tech_stack": "Rust"})

        assert parse_normalizer_output(content) == {"status": "Beta"}

    def test_accepts_fenced_json(self):
        content = '```json\n{"key_decisions": "Use SQLite"}\n```'

        assert parse_normalizer_output(content) == {"key_decisions": "Use SQLite"}

    def test_invalid_json_raises(self):
        with pytest.raises(ReportNormalizerError):
            parse_normalizer_output("Sure! Here are the sections")

    def test_non_object_raises(self):
        with pytest.raises(ReportNormalizerError):
            parse_normalizer_output('["summary"]')

    def test_wrong_value_type_raises(self):
        with pytest.raises(ReportNormalizerError):
            parse_normalizer_output('{"summary": {"nested": true}}')


def test_build_prompt_uses_inline_fallback(tmp_path, existing, entries):
    normalizer = ReportNormalizer(
        config=AppConfig(database_path=tmp_path / "j.db"),
        prompt_loader=PromptLoader(prompts_dir=tmp_path / "missing"),
    )

    prompt = normalizer.build_prompt("We pivoted to B2B", existing, entries)

    assert "We pivoted to B2B" in prompt
    assert "Invoicing for freelancers" in prompt
    assert "abc1234" in prompt
    assert "extended_notes" in prompt


def _mock_response(payload: dict) -> MagicMock:
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = payload
    response.raise_for_status = MagicMock()
    return response


@pytest.mark.asyncio
async def test_normalize_via_openrouter(tmp_path, existing, entries):
    normalizer = ReportNormalizer(
        config=AppConfig(
            database_path=tmp_path / "j.db",
            openrouter_api_key="sk-test",
            normalizer_model="test/model",
        )
    )
    content = json.dumps({"status": "Public beta", "purpose": ""})

    with patch("backend.src.services.report_normalizer.httpx.AsyncClient") as mock_client:
        post = AsyncMock(
            return_value=_mock_response({"choices": [{"message": {"content": content}}]})
        )
        mock_client.return_value.__aenter__.return_value.post = post

        result = await normalizer.normalize("Launched the public beta", existing, entries)

    assert result == {"status": "Public beta"}
    url = post.await_args.args[0]
    kwargs = post.await_args.kwargs
    assert url.endswith("/chat/completions")
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
    assert kwargs["json"]["model"] == "test/model"
    assert "Launched the public beta" in kwargs["json"]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_normalize_via_google(tmp_path, existing):
    normalizer = ReportNormalizer(
        config=AppConfig(
            database_path=tmp_path / "j.db",
            normalizer_provider=ModelProvider.GOOGLE,
            normalizer_model="gemini-2.5-flash",
            google_api_key="gk-test",
        )
    )
    text = json.dumps({"summary": "Billing platform"})

    with patch("backend.src.services.report_normalizer.httpx.AsyncClient") as mock_client:
        post = AsyncMock(
            return_value=_mock_response(
                {"candidates": [{"content": {"parts": [{"text": text}]}}]}
            )
        )
        mock_client.return_value.__aenter__.return_value.post = post

        result = await normalizer.normalize("report", existing, [])

    assert result == {"summary": "Billing platform"}
    assert post.await_args.args[0].endswith("models/gemini-2.5-flash:generateContent")
    assert post.await_args.kwargs["params"] == {"key": "gk-test"}


@pytest.mark.asyncio
async def test_http_failure_raises_normalizer_error(tmp_path, existing):
    normalizer = ReportNormalizer(
        config=AppConfig(database_path=tmp_path / "j.db", openrouter_api_key="sk-test")
    )
    request = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
    failing = _mock_response({})
    failing.raise_for_status.side_effect = httpx.HTTPStatusError(
        "Bad Gateway", request=request, response=httpx.Response(502, request=request)
    )

    with patch("backend.src.services.report_normalizer.httpx.AsyncClient") as mock_client:
        mock_client.return_value.__aenter__.return_value.post = AsyncMock(return_value=failing)

        with pytest.raises(ReportNormalizerError) as exc_info:
            await normalizer.normalize("report", existing, [])

    assert exc_info.value.details["provider"] == "openrouter"


@pytest.mark.asyncio
async def test_missing_api_key_raises(tmp_path, existing):
    normalizer = ReportNormalizer(config=AppConfig(database_path=tmp_path / "j.db"))

    with pytest.raises(ReportNormalizerError, match="OPENROUTER_API_KEY"):
        await normalizer.normalize("report", existing, [])
