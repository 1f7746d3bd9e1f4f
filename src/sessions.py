"""
Composer session browsing for ChatTrail.

Summarizes each composer session with a status (Active, Completed or
Abandoned) and an activity level (High, Medium or Low), and lists them
sorted by recency, creation, activity or duration.

Status depends on how long ago the session was touched, so every function
that needs the current time takes an optional `now` in epoch milliseconds.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from constants import (
    ACTIVITY_LEVELS,
    DEFAULT_SESSION_NAME,
    DEFAULT_SESSION_SORT,
    HIGH_CODE_CHANGE_DENSITY,
    HIGH_CONVERSATION_DENSITY,
    MAX_SUMMARY_TOPICS,
    MEDIUM_CODE_CHANGE_DENSITY,
    MEDIUM_CONVERSATION_DENSITY,
    SESSION_ABANDONED_DAYS,
    SESSION_COMPLETION_KEYWORDS,
    SESSION_RECENT_DAYS,
    SESSION_SORT_KEYS,
    SESSION_STATUSES,
)
from conversation import PROMPT, ConversationEntry, SessionConversation, now_ms
from patterns import contains_any
from topic_extractor import extract_session_topics

logger = logging.getLogger(__name__)

ACTIVE, COMPLETED, ABANDONED = SESSION_STATUSES
HIGH, MEDIUM, LOW = ACTIVITY_LEVELS

MS_PER_MINUTE = 60 * 1000
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR


@dataclass
class SessionSummary:
    composer_id: str
    name: str
    created_at: int
    last_activity: int
    duration: str
    prompt_count: int
    generation_count: int
    code_changes: int
    status: str
    activity_level: str
    top_topics: List[str] = field(default_factory=list)

    @property
    def duration_ms(self) -> int:
        return max(self.last_activity - self.created_at, 0)

    @property
    def activity_score(self) -> int:
        # Code changes count double
        return self.prompt_count + self.generation_count + 2 * self.code_changes


@dataclass
class SessionDetail:
    """One session's summary plus its full conversation flow"""
    summary: SessionSummary
    topics: List[str]
    entries: List[ConversationEntry]
    unified_mode: str = "unknown"
    force_mode: str = "unknown"

    @property
    def code_change_entries(self) -> List[ConversationEntry]:
        return [e for e in self.entries if e.is_code_change]


def format_duration(duration_ms: int) -> str:
    """'3h 12m' or '45m'"""
    duration_ms = max(duration_ms, 0)
    hours = duration_ms // MS_PER_HOUR
    minutes = (duration_ms % MS_PER_HOUR) // MS_PER_MINUTE
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def determine_session_status(
    entries: Sequence[ConversationEntry],
    code_changes: int,
    last_activity_ms: int,
    now: Optional[int] = None
) -> str:
    """
    Abandoned after 30 idle days. Otherwise Completed when the conversation
    mentions finishing and produced code, Active when anything happened in
    the last 7 days, else Abandoned.
    """
    now = now if now is not None else now_ms()
    days_idle = (now - last_activity_ms) / MS_PER_DAY

    if days_idle > SESSION_ABANDONED_DAYS:
        return ABANDONED

    recent_cutoff = SESSION_RECENT_DAYS * MS_PER_DAY
    has_recent = days_idle < SESSION_RECENT_DAYS or any(
        now - e.timestamp_ms < recent_cutoff for e in entries
    )

    text = ' '.join(e.text.lower() for e in entries)
    if code_changes > 0 and contains_any(text, SESSION_COMPLETION_KEYWORDS):
        return COMPLETED
    if has_recent:
        return ACTIVE
    return ABANDONED


def calculate_activity_level(
    prompt_count: int,
    generation_count: int,
    code_changes: int,
    duration_hours: float
) -> str:
    """High, Medium or Low from entries and code changes per hour"""
    if duration_hours <= 0:
        return LOW

    conversation_density = (prompt_count + generation_count) / duration_hours
    code_change_density = code_changes / duration_hours

    if conversation_density > HIGH_CONVERSATION_DENSITY or code_change_density > HIGH_CODE_CHANGE_DENSITY:
        return HIGH
    if conversation_density > MEDIUM_CONVERSATION_DENSITY or code_change_density > MEDIUM_CODE_CHANGE_DENSITY:
        return MEDIUM
    return LOW


def describe_session(conversation: SessionConversation, now: Optional[int] = None) -> SessionDetail:
    """Full detail of one linked composer session"""
    session = conversation.session
    entries = list(conversation.entries)

    prompt_count = sum(1 for e in entries if e.role == PROMPT)
    generation_count = len(entries) - prompt_count
    code_changes = sum(1 for e in entries if e.is_code_change)
    duration_ms = max(session.last_updated_at - session.created_at, 0)
    topics = extract_session_topics(conversation.text)

    summary = SessionSummary(
        composer_id=session.composer_id,
        name=session.name or DEFAULT_SESSION_NAME,
        created_at=session.created_at,
        last_activity=session.last_updated_at,
        duration=format_duration(duration_ms),
        prompt_count=prompt_count,
        generation_count=generation_count,
        code_changes=code_changes,
        status=determine_session_status(entries, code_changes, session.last_updated_at, now),
        activity_level=calculate_activity_level(
            prompt_count, generation_count, code_changes, duration_ms / MS_PER_HOUR
        ),
        top_topics=topics[:MAX_SUMMARY_TOPICS],
    )

    return SessionDetail(
        summary=summary,
        topics=topics,
        entries=entries,
        unified_mode=session.unified_mode,
        force_mode=session.force_mode,
    )


def summarize_session(conversation: SessionConversation, now: Optional[int] = None) -> SessionSummary:
    return describe_session(conversation, now).summary


def validate_sort_key(sort_by: str) -> str:
    if sort_by not in SESSION_SORT_KEYS:
        raise ValueError(
            f"Invalid sort key '{sort_by}'. Choose from: {', '.join(SESSION_SORT_KEYS)}"
        )
    return sort_by


SORT_FIELDS = {
    'modified': lambda s: s.last_activity,
    'created': lambda s: s.created_at,
    'activity': lambda s: s.activity_score,
    'duration': lambda s: s.duration_ms,
}


def list_sessions(
    conversations: Sequence[SessionConversation],
    sort_by: str = DEFAULT_SESSION_SORT,
    limit: Optional[int] = None,
    now: Optional[int] = None
) -> List[SessionSummary]:
    """
    Summaries of every session, largest sort value first.

    Ties keep the stored session order. A limit of None or 0 returns all.
    """
    validate_sort_key(sort_by)
    now = now if now is not None else now_ms()

    summaries = [summarize_session(c, now) for c in conversations]
    summaries.sort(key=SORT_FIELDS[sort_by], reverse=True)

    logger.debug("Listed %d sessions sorted by %s", len(summaries), sort_by)
    return summaries[:limit] if limit else summaries
