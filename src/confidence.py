"""
Confidence scoring for workspace analyses.

An additive, auditable heuristic, not a probability. Each rule adds a fixed
increment when its check passes; the total is clamped to [0, 1].
"""

from dataclasses import dataclass
from typing import Callable, List, Tuple

from constants import (
    CONFIDENCE_BASE,
    CONFIDENCE_CODE_CHANGES,
    CONFIDENCE_HAS_TECHNOLOGY,
    CONFIDENCE_MANY_PROMPTS,
    CONFIDENCE_MANY_PROMPTS_MIN,
    CONFIDENCE_MANY_TECHNOLOGIES,
    CONFIDENCE_MANY_TECHNOLOGIES_MIN,
    CONFIDENCE_PROJECT_TYPE,
    CONFIDENCE_PROMPTS,
    CONFIDENCE_PROMPTS_MIN,
    CONFIDENCE_SPECIFIC_LABEL,
    CONFIDENCE_TEXT_LENGTH,
    CONFIDENCE_TEXT_LENGTH_MIN,
    DEFAULT_PROJECT_TYPE,
    DEFAULT_SMART_LABEL,
)


@dataclass(frozen=True)
class ConfidenceSignals:
    """The facts about an analysis that confidence depends on"""
    technology_count: int
    project_type: str
    smart_label: str
    prompt_count: int
    code_changes: int
    text_length: int


Rule = Tuple[str, float, Callable[[ConfidenceSignals], bool]]

CONFIDENCE_RULES: List[Rule] = [
    ('technologies_detected', CONFIDENCE_HAS_TECHNOLOGY,
     lambda s: s.technology_count > 0),
    ('many_technologies', CONFIDENCE_MANY_TECHNOLOGIES,
     lambda s: s.technology_count > CONFIDENCE_MANY_TECHNOLOGIES_MIN),
    ('project_type_resolved', CONFIDENCE_PROJECT_TYPE,
     lambda s: s.project_type != DEFAULT_PROJECT_TYPE),
    ('specific_label', CONFIDENCE_SPECIFIC_LABEL,
     lambda s: s.smart_label != DEFAULT_SMART_LABEL),
    ('prompt_volume', CONFIDENCE_PROMPTS,
     lambda s: s.prompt_count > CONFIDENCE_PROMPTS_MIN),
    ('high_prompt_volume', CONFIDENCE_MANY_PROMPTS,
     lambda s: s.prompt_count > CONFIDENCE_MANY_PROMPTS_MIN),
    ('code_changes', CONFIDENCE_CODE_CHANGES,
     lambda s: s.code_changes > 0),
    ('text_volume', CONFIDENCE_TEXT_LENGTH,
     lambda s: s.text_length > CONFIDENCE_TEXT_LENGTH_MIN),
]


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def matched_rules(signals: ConfidenceSignals) -> List[str]:
    """Names of the rules that contributed, for explaining a score"""
    return [name for name, _, check in CONFIDENCE_RULES if check(signals)]


def calculate_confidence(signals: ConfidenceSignals) -> float:
    confidence = CONFIDENCE_BASE
    for _, increment, check in CONFIDENCE_RULES:
        if check(signals):
            confidence += increment
    # Summing tenths drifts (0.30000000000000004); round before clamping
    return clamp(round(confidence, 4))
