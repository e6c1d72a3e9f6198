"""Size guard for text handed back over constrained tool transports."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

MAX_SAFE_LINES = 200
MAX_SAFE_BYTES = 9000


def preview(text: str, limit: int) -> str:
    """Collapse ``text`` to at most ``limit`` characters, ellipsis-terminated."""
    cleaned = " ".join(text.split())
    if len(cleaned) <= limit:
        return cleaned
    return cleaned[: max(limit - 3, 0)].rstrip() + "..."


def _warning(shown: int, total_lines: int, total_bytes: int) -> str:
    return (
        f"[OUTPUT TRUNCATED: showing {shown} of {total_lines} lines "
        f"({total_bytes} bytes total). Request a narrower view for the rest.]"
    )


def truncate_output(
    text: str,
    max_lines: int = MAX_SAFE_LINES,
    max_bytes: int = MAX_SAFE_BYTES,
) -> str:
    """Trim tool output to the line and byte budget.

    When anything is cut, a warning is placed at both the top and the bottom
    so the reader cannot miss it whichever end they look at. The warnings
    count against both budgets.
    """
    lines = text.split("\n")
    size = len(text.encode("utf-8"))
    if len(lines) <= max_lines and size <= max_bytes:
        return text

    # Two warning lines and two blank separators; the widest warning reports
    # every line as shown.
    reserved_bytes = 2 * len(_warning(len(lines), len(lines), size).encode("utf-8")) + 4
    body_bytes = max(max_bytes - reserved_bytes, 0)
    body_lines = max(max_lines - 4, 0)

    body = "\n".join(lines[:body_lines])
    encoded = body.encode("utf-8")
    if len(encoded) > body_bytes:
        body = encoded[:body_bytes].decode("utf-8", errors="ignore")
        # Avoid ending mid-line
        if "\n" in body:
            body = body[: body.rfind("\n")]

    shown = body.count("\n") + 1 if body else 0
    logger.debug(
        "Truncated tool output",
        extra={"original_lines": len(lines), "original_bytes": size, "kept_lines": shown},
    )
    warning = _warning(shown, len(lines), size)
    return f"{warning}\n\n{body}\n\n{warning}"


__all__ = ["truncate_output", "preview", "MAX_SAFE_LINES", "MAX_SAFE_BYTES"]
