"""
Weighted keyword classifier for ChatTrail.

Scores text against a compiled pattern table: each keyword contributes
occurrences * weight to its label. Labels with a zero score never win.
Equal scores are ordered by the label's position in its table.
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence

from constants import (
    DEFAULT_PROJECT_TYPE,
    DEFAULT_STATUS,
    MAX_TECHNOLOGIES,
    STATUS_RECENT_WINDOW,
)
from conversation import ConversationData
from patterns import (
    COMPILED_PROJECT_TYPES,
    COMPILED_STATUSES,
    COMPILED_TECHNOLOGIES,
    CompiledCategory,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassificationResult:
    label: str
    score: int


def score_categories(
    text: str,
    categories: Sequence[CompiledCategory]
) -> List[ClassificationResult]:
    """
    Score every category of a table against text.

    Returns only labels with a positive score, best first; ties keep
    declaration order.
    """
    if not text:
        return []

    scored = []
    for category in categories:
        score = sum(term.count(text) * term.weight for term in category.terms)
        if score > 0:
            scored.append((category.order, ClassificationResult(category.label, score)))

    scored.sort(key=lambda item: (-item[1].score, item[0]))
    return [result for _, result in scored]


def pick_winner(results: List[ClassificationResult], default: str) -> str:
    return results[0].label if results else default


def rank_technologies(text: str) -> List[ClassificationResult]:
    return score_categories(text, COMPILED_TECHNOLOGIES)[:MAX_TECHNOLOGIES]


def detect_technologies(text: str) -> List[str]:
    """Up to five technology labels, strongest first"""
    return [r.label for r in rank_technologies(text)]


def determine_project_type(text: str) -> str:
    return pick_winner(score_categories(text, COMPILED_PROJECT_TYPES), DEFAULT_PROJECT_TYPE)


def recent_text(data: ConversationData, window: int = STATUS_RECENT_WINDOW) -> str:
    """Text of the last `window` prompts and last `window` generations"""
    recent = data.prompts[-window:] + data.generations[-window:]
    return ' '.join(entry.text for entry in recent).lower()


def detect_status(data: ConversationData) -> str:
    """
    Current project status from recent activity only.

    Older conversation is ignored so a project that was debugged months
    ago and is now being documented reads as 'Documentation'.
    """
    results = score_categories(recent_text(data), COMPILED_STATUSES)
    status = pick_winner(results, DEFAULT_STATUS)
    logger.debug("Status scores: %s -> %s", results, status)
    return status
