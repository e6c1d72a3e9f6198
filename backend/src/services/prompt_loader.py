"""Jinja2-based prompt template loader for project summary prompts.

Templates live in the backend/prompts/ directory and are rendered with context
variables. They are reloaded on every call so prompts can be edited without
restarting the server.

Inline fallback prompts are used when the prompts directory is missing, for
example when the package is installed without its data files.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import jinja2

logger = logging.getLogger(__name__)

# backend/src/services/prompt_loader.py -> backend/prompts/
DEFAULT_PROMPTS_DIR = Path(__file__).resolve().parent.parent.parent / "prompts"

INLINE_PROMPTS: Dict[str, str] = {
    "summary/normalize.md": """# Normalize Project Report

Update the narrative sections of the project summary for {{ repository }}.

## Existing Sections
{% for name, value in existing_sections %}
**{{ name }}:** {{ value or 'Not set' }}
{% endfor %}

## Recent Journal Entries
{% for entry in recent_entries %}
- {{ entry.commit_hash }}: {{ entry.why }}
{% else %}
No recent journal entries available.
{% endfor %}

## Report

{{ raw_report }}

Return a single JSON object with exactly these keys: {{ section_names | join(', ') }}.
Use an empty string "" for any section with no meaningful update.
""",
    "summary/update_guide.md": """# Update the project summary for {{ repository or 'this repository' }}

- Technical sections ({{ technical_sections | join(', ') }}): call
  journal_update_technical_sections with the commit you analysed.
- Narrative sections ({{ narrative_sections | join(', ') }}): call
  journal_submit_summary_report with sections and/or a raw_report.
- No summary yet: call journal_create_project_summary with at least
  {{ tier1_sections | join(', ') }}.
""",
}


class PromptLoaderError(Exception):
    """Raised when a prompt cannot be loaded."""

    pass


class PromptLoader:
    """Load and render Jinja2 prompt templates.

    Example:
        >>> loader = PromptLoader()
        >>> prompt = loader.load("summary/update_guide.md", {"repository": "acme"})
    """

    def __init__(self, prompts_dir: Optional[Path] = None) -> None:
        self.prompts_dir = prompts_dir or DEFAULT_PROMPTS_DIR

        if self.prompts_dir.is_dir():
            self.env = jinja2.Environment(
                loader=jinja2.FileSystemLoader(str(self.prompts_dir)),
                autoescape=False,  # Prompts are markdown, not HTML
                auto_reload=True,
                keep_trailing_newline=True,
            )
            logger.debug(
                "PromptLoader initialized with filesystem templates",
                extra={"prompts_dir": str(self.prompts_dir)},
            )
        else:
            self.env = None
            logger.warning(
                "Prompts directory not found, using inline fallbacks",
                extra={"prompts_dir": str(self.prompts_dir)},
            )

    def load(self, path: str, context: Optional[Dict[str, Any]] = None) -> str:
        """Load and render a prompt template.

        Args:
            path: Relative path to the template file (e.g., "summary/normalize.md").
            context: Dictionary of variables to render into the template.

        Returns:
            The rendered prompt string.

        Raises:
            PromptLoaderError: If the template cannot be loaded or rendered.
        """
        context = context or {}

        if self.env is not None:
            try:
                template = self.env.get_template(path)
                rendered = template.render(**context)
                logger.debug(
                    "Loaded prompt from filesystem",
                    extra={"path": path, "context_keys": list(context.keys())},
                )
                return rendered
            except jinja2.TemplateNotFound:
                logger.debug(
                    "Template not found in filesystem, trying inline fallback",
                    extra={"path": path},
                )
            except jinja2.TemplateError as e:
                logger.error(
                    "Failed to render template",
                    extra={"path": path, "error": str(e)},
                )
                raise PromptLoaderError(f"Failed to render template {path}: {e}") from e

        return self._get_inline_prompt(path, context)

    def _get_inline_prompt(self, path: str, context: Dict[str, Any]) -> str:
        template_str = INLINE_PROMPTS.get(path)

        if template_str is None:
            logger.warning(
                "No inline fallback for prompt path",
                extra={"path": path, "available": list(INLINE_PROMPTS.keys())},
            )
            raise PromptLoaderError(
                f"Prompt not found: {path}. "
                f"Available inline prompts: {list(INLINE_PROMPTS.keys())}"
            )

        try:
            rendered = jinja2.Template(template_str).render(**context)
            logger.debug(
                "Loaded inline fallback prompt",
                extra={"path": path, "context_keys": list(context.keys())},
            )
            return rendered
        except jinja2.TemplateError as e:
            logger.error(
                "Failed to render inline template",
                extra={"path": path, "error": str(e)},
            )
            raise PromptLoaderError(
                f"Failed to render inline template {path}: {e}"
            ) from e


__all__ = ["PromptLoader", "PromptLoaderError", "DEFAULT_PROMPTS_DIR", "INLINE_PROMPTS"]
