from __future__ import annotations

"""Sliding conversation window.

Messaging channels have no sessions, so the prompt history is a window over
the stored conversation: recent enough, short enough and small enough to fit
the token budget. Three constraints are applied in order:

1. age: drop messages older than ``max_age_hours``;
2. count: keep the ``max_messages`` most recent;
3. tokens: drop the oldest until the estimate fits ``max_tokens``.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from ...core.config import ConversationWindowConfig, settings
from ..schemas.domain import ConversationMessage

CHARS_PER_TOKEN = 3.3
NO_HISTORY_TEXT = "(No recent conversation history)"


def estimate_tokens(content: str) -> int:
    return math.ceil(len(content) / CHARS_PER_TOKEN)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def get_relevant_history(
    messages: Sequence[ConversationMessage],
    config: Optional[ConversationWindowConfig] = None,
    *,
    now: Optional[datetime] = None,
) -> List[ConversationMessage]:
    """Return the windowed history in chronological order (oldest first)."""
    if not messages:
        return []
    cfg = config or settings.conversation_window
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(hours=cfg.max_age_hours)

    recent = [m for m in messages if _as_utc(m.created_at) >= cutoff]
    recent.sort(key=lambda m: _as_utc(m.created_at), reverse=True)
    recent = recent[: cfg.max_messages]

    kept: List[ConversationMessage] = []
    total = 0
    # recent is newest first, so the budget keeps the latest turns
    for m in recent:
        cost = estimate_tokens(m.content)
        if total + cost > cfg.max_tokens:
            break
        kept.append(m)
        total += cost
    kept.reverse()
    return kept


def format_history_for_prompt(messages: Sequence[ConversationMessage]) -> str:
    if not messages:
        return NO_HISTORY_TEXT
    return "\n".join(f"{'User' if m.role == 'user' else 'Assistant'}: {m.content}" for m in messages)


@dataclass(frozen=True)
class WindowStats:
    message_count: int
    total_tokens: int
    oldest: Optional[datetime]
    newest: Optional[datetime]


def get_window_stats(messages: Sequence[ConversationMessage]) -> WindowStats:
    """Summarize a (windowed) history for logging."""
    if not messages:
        return WindowStats(message_count=0, total_tokens=0, oldest=None, newest=None)
    return WindowStats(
        message_count=len(messages),
        total_tokens=sum(estimate_tokens(m.content) for m in messages),
        oldest=messages[0].created_at,
        newest=messages[-1].created_at,
    )
