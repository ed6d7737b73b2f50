from __future__ import annotations

"""Current-turn media block for the planner prompt.

Attachment summaries come from an upstream vision model and are untrusted
text; every value is XML-escaped before it is placed inside the block.
"""

import logging
from typing import Sequence
from xml.sax.saxutils import escape

from ..schemas.domain import MediaSummary

logger = logging.getLogger(__name__)

MAX_CURRENT_MEDIA_SUMMARIES = 5
MAX_CURRENT_MEDIA_SUMMARY_CHARS = 300

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def escape_xml(text: str) -> str:
    return escape(text, _XML_ENTITIES)


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    logger.debug(f"Media summary truncated: original_length={len(text)}, max_length={max_length}")
    return text[: max_length - 3] + "..."


def format_current_media_context(summaries: Sequence[MediaSummary]) -> str:
    """Render up to five summaries as a ``<current_media>`` block ("" when none)."""
    if not summaries:
        return ""
    entries = []
    for s in list(summaries)[:MAX_CURRENT_MEDIA_SUMMARIES]:
        body = escape_xml(truncate_text(s.summary, MAX_CURRENT_MEDIA_SUMMARY_CHARS))
        category = f' category="{escape_xml(s.category)}"' if s.category else ""
        entries.append(
            f'<attachment index="{s.attachment_index}" mime_type="{escape_xml(s.mime_type)}"{category}>\n'
            f"{body}\n</attachment>"
        )
    joined = "\n\n".join(entries)
    return (
        "<current_media>\n"
        "The user's current message includes the following media attachments. "
        "Use these summaries to understand what the user sent.\n\n"
        f"{joined}\n</current_media>"
    )
