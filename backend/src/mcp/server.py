"""FastMCP server exposing the Living Project Summary tools."""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP
from fastmcp.tools.tool import ToolResult
from mcp.types import TextContent
from pydantic import Field

# Load environment variables from .env file
load_dotenv()

from ..models.journal import JournalEntry
from ..services.config import get_config
from ..services.output_limits import truncate_output
from ..services.prompt_loader import PromptLoader
from ..services.section_schema import NARRATIVE_SECTIONS, TECHNICAL_SECTIONS, TIER1_SECTIONS
from ..services.summary_service import SummaryService, get_summary_service
from ..services.summary_store import SummaryError

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "developer-journal",
    instructions=(
        "Living Project Summary (Entry 0) tools. Each repository has one summary made of named sections. "
        f"Technical sections ({', '.join(TECHNICAL_SECTIONS)}) are updated against a commit with "
        "journal_update_technical_sections. Narrative sections "
        f"({', '.join(NARRATIVE_SECTIONS)}) are updated with journal_submit_summary_report. "
        f"Creating a summary requires {', '.join(TIER1_SECTIONS)}. Updates never delete content: "
        "overwritten values are kept in per-section history, visible through the deep resource. "
        "Read journal://summary/{repository} for current values only. Record per-commit notes with "
        "journal_create_entry; the newest entries give context when a raw report is normalized."
    ),
)

prompt_loader = PromptLoader()


def _service() -> SummaryService:
    return get_summary_service()


def _log_call(tool_name: str, start_time: float, **extra: Any) -> None:
    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        "MCP tool called",
        extra={"tool_name": tool_name, "duration_ms": f"{duration_ms:.2f}", **extra},
    )


def _rejection(tool_name: str, exc: SummaryError) -> Dict[str, Any]:
    logger.warning(
        f"{tool_name} rejected: {exc.message}",
        extra={"tool_name": tool_name, "error": exc.error, **exc.details},
    )
    return exc.to_dict()


def _result(text: str, structured: Dict[str, Any]) -> ToolResult:
    return ToolResult(
        content=[TextContent(type="text", text=truncate_output(text))],
        structured_content=structured,
    )


@mcp.tool(
    name="journal_create_project_summary",
    description=(
        "Create the Living Project Summary for a repository. Requires the Tier-1 technical sections "
        f"({', '.join(TIER1_SECTIONS)}); any other known section may be included. Fails if a summary "
        "already exists; use the update tools instead."
    ),
)
def journal_create_project_summary(
    repository: str = Field(..., description="Repository name", min_length=1, max_length=256),
    sections: Dict[str, str] = Field(
        ..., description="Section name to value. Unknown names are rejected."
    ),
    git_url: Optional[str] = Field(default=None, description="Repository URL"),
    current_commit: Optional[str] = Field(
        default=None, description="Commit the initial values describe"
    ),
) -> Any:
    start_time = time.time()
    try:
        created = _service().create_summary(
            repository, sections, git_url=git_url, current_commit=current_commit
        )
    except SummaryError as exc:
        return _rejection("journal_create_project_summary", exc)

    _log_call(
        "journal_create_project_summary",
        start_time,
        repository=repository,
        sections_count=created.sections_count,
    )
    text = (
        f"Created project summary for {repository} with {created.sections_count} sections: "
        f"{', '.join(created.sections_filled)}"
    )
    return _result(text, created.model_dump(mode="json"))


@mcp.tool(
    name="journal_update_technical_sections",
    description=(
        "Update technical sections of a project summary after analysing a commit. Only send the "
        "sections that changed. Previous values are kept in each section's history, and agent_report "
        "is stored as the reason for the change."
    ),
)
def journal_update_technical_sections(
    repository: str = Field(..., description="Repository name", min_length=1, max_length=256),
    to_commit: str = Field(..., description="Commit the new values describe", min_length=1),
    sections: Dict[str, str] = Field(
        ..., description=f"Technical section name to new value ({', '.join(TECHNICAL_SECTIONS)})"
    ),
    agent_report: str = Field(default="", description="What changed and why"),
    from_commit: Optional[str] = Field(
        default=None, description="Commit the analysis started from (defaults to the summary's commit)"
    ),
) -> Any:
    start_time = time.time()
    try:
        result = _service().update_technical(
            repository,
            to_commit,
            sections,
            agent_report=agent_report,
            from_commit=from_commit,
        )
    except SummaryError as exc:
        return _rejection("journal_update_technical_sections", exc)

    _log_call(
        "journal_update_technical_sections",
        start_time,
        repository=repository,
        to_commit=to_commit,
        updated_sections=result.updated_sections,
    )
    text = (
        f"Updated {len(result.updated_sections)} technical sections for {repository} "
        f"({result.from_commit or 'unknown'} -> {to_commit}): {', '.join(result.updated_sections)}. "
        f"History entries added: {result.total_updates}"
    )
    return _result(text, result.model_dump(mode="json"))


@mcp.tool(
    name="journal_submit_summary_report",
    description=(
        "Update narrative sections of a project summary. Send exact values in 'sections', a free-form "
        "'raw_report' to be normalized into sections, or both. Values given in 'sections' always win "
        "over values derived from the report."
    ),
)
async def journal_submit_summary_report(
    repository: str = Field(..., description="Repository name", min_length=1, max_length=256),
    sections: Optional[Dict[str, str]] = Field(
        default=None,
        description=f"Narrative section name to value ({', '.join(NARRATIVE_SECTIONS)})",
    ),
    raw_report: Optional[str] = Field(
        default=None, description="Free-form report to normalize into narrative sections"
    ),
    commit: Optional[str] = Field(default=None, description="Commit to pin the update to"),
    change_summary: Optional[str] = Field(
        default=None, description="Why the sections changed (stored in history)"
    ),
    include_recent_entries: int = Field(
        default=5, ge=0, description="Recent journal entries to give the normalizer as context"
    ),
) -> Any:
    start_time = time.time()
    try:
        result = await _service().update_narrative(
            repository,
            sections=sections,
            raw_report=raw_report,
            change_summary=change_summary,
            commit=commit,
            include_recent_entries=include_recent_entries,
        )
    except SummaryError as exc:
        return _rejection("journal_submit_summary_report", exc)

    _log_call(
        "journal_submit_summary_report",
        start_time,
        repository=repository,
        updated_sections=result.updated_sections,
        used_report=bool(raw_report),
    )
    text = (
        f"Updated {len(result.updated_sections)} narrative sections for {repository}: "
        f"{', '.join(result.updated_sections)}"
    )
    return _result(text, result.model_dump(mode="json"))


@mcp.tool(
    name="journal_create_entry",
    description=(
        "Record a journal entry for a git commit: why the work was done, what changed, the "
        "decisions made and the technologies involved. The newest entries are given to "
        "journal_submit_summary_report as context when it normalizes a raw_report. Recording "
        "the same commit again replaces its entry."
    ),
)
def journal_create_entry(
    commit_hash: str = Field(..., description="Commit SHA", min_length=4, max_length=64),
    repository: str = Field(..., description="Repository name", min_length=1, max_length=256),
    date: datetime = Field(..., description="Commit date (ISO 8601)"),
    why: str = Field(default="", description="Motivation behind the change"),
    what_changed: str = Field(default="", description="Concrete changes made"),
    decisions: str = Field(default="", description="Key decisions and their reasoning"),
    technologies: str = Field(default="", description="Technologies involved"),
    branch: str = Field(default="main", description="Branch the commit landed on"),
    author: str = Field(default="unknown", description="Commit author"),
    summary: Optional[str] = Field(default=None, description="One-line summary of the entry"),
) -> ToolResult:
    start_time = time.time()
    recorded = _service().record_entry(
        JournalEntry(
            commit_hash=commit_hash,
            repository=repository,
            branch=branch,
            author=author,
            date=date,
            why=why,
            what_changed=what_changed,
            decisions=decisions,
            technologies=technologies,
            summary=summary,
        )
    )
    _log_call(
        "journal_create_entry",
        start_time,
        repository=repository,
        commit=commit_hash,
    )
    text = (
        f"Recorded journal entry for {repository} at {commit_hash} "
        f"({recorded.entry_count} entries for this repository)"
    )
    return _result(text, recorded.model_dump(mode="json"))


@mcp.tool(
    name="journal_list_project_summaries",
    description="List repositories that have a project summary, ordered by name.",
)
def journal_list_project_summaries(
    limit: int = Field(default=30, ge=1, description="Page size (capped at 50)"),
    offset: int = Field(default=0, ge=0, description="Number of summaries to skip"),
) -> ToolResult:
    start_time = time.time()
    page = _service().list_summaries(limit=limit, offset=offset)
    _log_call(
        "journal_list_project_summaries",
        start_time,
        limit=limit,
        offset=offset,
        total=page.total,
    )

    lines = [f"{page.total} project summaries"]
    for item in page.summaries:
        last_entry = item.last_entry_date.date().isoformat() if item.last_entry_date else "never"
        lines.append(
            f"- {item.repository} (v{item.schema_version}, {item.sections_count} sections, "
            f"commit {item.current_commit or 'none'}, {item.entry_count} entries, "
            f"last entry {last_entry})"
        )
    if page.has_more:
        lines.append(f"More available: use offset={offset + len(page.summaries)}")
    return _result("\n".join(lines), page.model_dump(mode="json"))


@mcp.resource(
    "journal://summary/{repository}",
    name="project-summary",
    description="Current section values of a project summary, without history.",
    mime_type="application/json",
)
def project_summary_resource(repository: str) -> str:
    try:
        view = _service().get_shallow_view(repository)
    except SummaryError as exc:
        return json.dumps(exc.to_dict(), indent=2)
    return json.dumps(view, indent=2)


@mcp.resource(
    "journal://summary/{repository}/deep",
    name="project-summary-deep",
    description="Full project summary: every section with its complete history and the legacy fields.",
    mime_type="application/json",
)
def project_summary_deep_resource(repository: str) -> str:
    try:
        view = _service().get_deep_view(repository)
    except SummaryError as exc:
        return json.dumps(exc.to_dict(), indent=2)
    return view.model_dump_json(indent=2)


@mcp.prompt(
    name="update-summary",
    description="Guide for keeping a repository's project summary current.",
)
def update_summary_prompt(repository: str = "") -> str:
    return prompt_loader.load(
        "summary/update_guide.md",
        {
            "repository": repository,
            "technical_sections": list(TECHNICAL_SECTIONS),
            "narrative_sections": list(NARRATIVE_SECTIONS),
            "tier1_sections": list(TIER1_SECTIONS),
        },
    )


if __name__ == "__main__":
    config = get_config()
    logging.basicConfig(level=config.log_level)
    transport = config.mcp_transport

    if transport != "stdio":
        logger.info(
            "Starting MCP server",
            extra={"transport": transport, "host": config.mcp_host, "port": config.mcp_port},
        )
        mcp.run(transport=transport, host=config.mcp_host, port=config.mcp_port)
    else:
        logger.info("Starting MCP server", extra={"transport": transport})
        mcp.run(transport=transport)
