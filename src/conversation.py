"""
Record normalization for ChatTrail.

Cursor stores prompts, generations and composer sessions as loosely shaped
JSON. Everything downstream works on the uniform records defined here, so
this is the only place that knows about the raw field names.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from constants import CODE_APPLY_TYPE

PROMPT = "prompt"
GENERATION = "generation"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds"""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ConversationEntry:
    """A single prompt or generation with its text and timestamp"""
    text: str
    timestamp_ms: int
    role: str  # 'prompt' or 'generation'
    id: str = ""
    subtype: Optional[str] = None  # generation type or prompt command type

    @property
    def is_code_change(self) -> bool:
        return self.role == GENERATION and self.subtype == CODE_APPLY_TYPE


@dataclass(frozen=True)
class SessionRecord:
    """Composer session metadata"""
    composer_id: str
    name: str
    created_at: int
    last_updated_at: int
    unified_mode: str = "unknown"
    force_mode: str = "unknown"


@dataclass
class ConversationData:
    """All prompts and generations of one workspace"""
    prompts: List[ConversationEntry] = field(default_factory=list)
    generations: List[ConversationEntry] = field(default_factory=list)

    @property
    def entries(self) -> List[ConversationEntry]:
        return self.prompts + self.generations

    @property
    def code_changes(self) -> int:
        return sum(1 for g in self.generations if g.is_code_change)

    def is_empty(self) -> bool:
        return not self.prompts and not self.generations


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _timestamp(value: Any, default: Optional[int] = None) -> int:
    """Parse an epoch-ms value; unusable values fall back to now"""
    if isinstance(value, bool):
        return default if default is not None else now_ms()
    try:
        parsed = int(value)
    except (TypeError, ValueError, OverflowError):
        return default if default is not None else now_ms()
    if parsed <= 0:
        return default if default is not None else now_ms()
    return parsed


def _records(raw: Any) -> List[Dict[str, Any]]:
    if not isinstance(raw, (list, tuple)):
        return []
    return [r for r in raw if isinstance(r, dict)]


def normalize_prompt(record: Dict[str, Any]) -> ConversationEntry:
    """Normalize one raw prompt record"""
    text = _text(record.get('textDescription')) or _text(record.get('text'))
    command_type = record.get('commandType')

    return ConversationEntry(
        text=text,
        timestamp_ms=_timestamp(record.get('unixMs')),
        role=PROMPT,
        id=_text(record.get('generationUUID')),
        subtype=str(command_type) if command_type is not None else None,
    )


def normalize_generation(record: Dict[str, Any]) -> ConversationEntry:
    """Normalize one raw generation record"""
    return ConversationEntry(
        text=_text(record.get('textDescription')),
        timestamp_ms=_timestamp(record.get('unixMs')),
        role=GENERATION,
        id=_text(record.get('generationUUID')),
        subtype=_text(record.get('type')) or 'unknown',
    )


def normalize_prompts(raw: Any) -> List[ConversationEntry]:
    return [normalize_prompt(r) for r in _records(raw)]


def normalize_generations(raw: Any) -> List[ConversationEntry]:
    return [normalize_generation(r) for r in _records(raw)]


def normalize_conversation(
    prompts: Any = None,
    generations: Any = None
) -> ConversationData:
    """
    Build ConversationData from raw prompt and generation arrays.

    Never raises: anything that is not a list of dicts is treated as empty.
    """
    return ConversationData(
        prompts=normalize_prompts(prompts),
        generations=normalize_generations(generations),
    )


def normalize_session(record: Dict[str, Any]) -> Optional[SessionRecord]:
    """Normalize one composer session; records without an id are dropped"""
    composer_id = _text(record.get('composerId'))
    if not composer_id:
        return None

    created_at = _timestamp(record.get('createdAt'))
    return SessionRecord(
        composer_id=composer_id,
        name=_text(record.get('name')),
        created_at=created_at,
        last_updated_at=_timestamp(record.get('lastUpdatedAt'), default=created_at),
        unified_mode=_text(record.get('unifiedMode')) or 'unknown',
        force_mode=_text(record.get('forceMode')) or 'unknown',
    )


def normalize_sessions(raw: Any) -> List[SessionRecord]:
    """
    Normalize composer data.

    Older Cursor builds store a bare list of sessions, newer ones wrap it
    as {"allComposers": [...]}.
    """
    if isinstance(raw, dict):
        raw = raw.get('allComposers', [])

    sessions = []
    for record in _records(raw):
        session = normalize_session(record)
        if session is not None:
            sessions.append(session)
    return sessions


def sort_by_time(entries: Iterable[ConversationEntry]) -> List[ConversationEntry]:
    """Chronological order; ties keep their input order"""
    return sorted(entries, key=lambda e: e.timestamp_ms)


@dataclass
class SessionConversation:
    """A composer session together with the entries that belong to it"""
    session: SessionRecord
    entries: List[ConversationEntry] = field(default_factory=list)

    @property
    def text(self) -> str:
        return ' '.join(e.text for e in self.entries).lower()


def link_session(session: SessionRecord, data: ConversationData) -> SessionConversation:
    """
    Collect the entries of one composer session.

    Cursor does not tag prompts with their session. A generation belongs to
    a session when its text mentions the composer id; a prompt belongs when
    it shares a generation UUID with one of those generations.
    """
    generations = [g for g in data.generations if session.composer_id in g.text]
    uuids = {g.id for g in generations if g.id}
    prompts = [p for p in data.prompts if p.id and p.id in uuids]

    return SessionConversation(session=session, entries=sort_by_time(prompts + generations))
