"""Unit tests for PromptLoader service."""

import os
from pathlib import Path

import pytest

from backend.src.services.prompt_loader import (
    DEFAULT_PROMPTS_DIR,
    PromptLoader,
    PromptLoaderError,
)


@pytest.fixture
def prompts_dir(tmp_path: Path) -> Path:
    """Create a temporary prompts directory with test templates."""
    prompts = tmp_path / "prompts"
    summary_dir = prompts / "summary"
    summary_dir.mkdir(parents=True)

    (summary_dir / "normalize.md").write_text(
        "# Normalize\n\nRepository: {{ repository }}\nReport: {{ raw_report }}"
    )
    (summary_dir / "greeting.md").write_text("Hello {{ repository or 'stranger' }}")
    (summary_dir / "broken.md").write_text("{{ repository | no_such_filter }}")

    return prompts


@pytest.fixture
def loader(prompts_dir: Path) -> PromptLoader:
    return PromptLoader(prompts_dir=prompts_dir)


class TestPromptLoaderInit:
    def test_init_with_existing_directory(self, prompts_dir: Path) -> None:
        loader = PromptLoader(prompts_dir=prompts_dir)

        assert loader.prompts_dir == prompts_dir
        assert loader.env is not None

    def test_init_with_nonexistent_directory(self, tmp_path: Path) -> None:
        """Loader falls back to inline prompts when directory doesn't exist."""
        loader = PromptLoader(prompts_dir=tmp_path / "nonexistent")

        assert loader.env is None

    def test_default_prompts_dir_is_backend_prompts(self) -> None:
        assert DEFAULT_PROMPTS_DIR.name == "prompts"
        assert DEFAULT_PROMPTS_DIR.parent.name == "backend"

    def test_shipped_templates_exist(self) -> None:
        assert (DEFAULT_PROMPTS_DIR / "summary" / "normalize.md").is_file()
        assert (DEFAULT_PROMPTS_DIR / "summary" / "update_guide.md").is_file()


class TestPromptLoaderLoad:
    def test_load_template_from_filesystem(self, loader: PromptLoader) -> None:
        result = loader.load(
            "summary/normalize.md", {"repository": "acme", "raw_report": "shipped it"}
        )

        assert "Repository: acme" in result
        assert "Report: shipped it" in result

    def test_load_template_with_default_values(self, loader: PromptLoader) -> None:
        assert loader.load("summary/greeting.md", {}) == "Hello stranger"

    def test_missing_file_uses_inline_fallback(self, loader: PromptLoader) -> None:
        """update_guide.md is not in the fixture directory but has an inline fallback."""
        result = loader.load(
            "summary/update_guide.md",
            {
                "repository": "acme",
                "technical_sections": ["commands"],
                "narrative_sections": ["status"],
                "tier1_sections": ["commands"],
            },
        )

        assert "acme" in result
        assert "journal_update_technical_sections" in result

    def test_render_error_raises(self, loader: PromptLoader) -> None:
        with pytest.raises(PromptLoaderError):
            loader.load("summary/broken.md", {"repository": "acme"})


class TestPromptLoaderInlineFallback:
    def test_inline_normalize_prompt(self, tmp_path: Path) -> None:
        loader = PromptLoader(prompts_dir=tmp_path / "nonexistent")

        result = loader.load(
            "summary/normalize.md",
            {
                "repository": "acme",
                "existing_sections": [("purpose", "Invoicing"), ("status", None)],
                "recent_entries": [],
                "raw_report": "We pivoted",
                "section_names": ["purpose", "status"],
            },
        )

        assert "**purpose:** Invoicing" in result
        assert "**status:** Not set" in result
        assert "No recent journal entries available." in result
        assert "We pivoted" in result

    def test_inline_fallback_raises_for_unknown_path(self, tmp_path: Path) -> None:
        loader = PromptLoader(prompts_dir=tmp_path / "nonexistent")

        with pytest.raises(PromptLoaderError, match="Prompt not found"):
            loader.load("summary/missing.md", {})


class TestPromptLoaderHotReload:
    def test_template_changes_are_picked_up(self, prompts_dir: Path) -> None:
        loader = PromptLoader(prompts_dir=prompts_dir)
        assert loader.load("summary/greeting.md", {"repository": "a"}) == "Hello a"

        template = prompts_dir / "summary" / "greeting.md"
        template.write_text("Hi {{ repository }}")
        later = template.stat().st_mtime + 5
        os.utime(template, (later, later))

        assert loader.load("summary/greeting.md", {"repository": "a"}) == "Hi a"
