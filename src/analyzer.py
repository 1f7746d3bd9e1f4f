"""
Workspace analysis for ChatTrail.

Turns one workspace's prompts, generations and composer sessions into a
WorkspaceAnalysis profile. Pure: the same input always gives the same
profile, and nothing is cached between calls.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from classifier import detect_status, detect_technologies, determine_project_type
from confidence import ConfidenceSignals, calculate_confidence, matched_rules
from constants import (
    DEFAULT_PROJECT_TYPE,
    DEFAULT_STATUS,
    HOURS_PER_ENTRY,
    HOURS_PER_SESSION,
    MIN_ESTIMATED_HOURS,
    UNKNOWN_TECHNOLOGY,
)
from conversation import ConversationData, SessionRecord
from topic_extractor import (
    extract_current_goals,
    extract_key_topics,
    extract_problems_solved,
    generate_smart_label,
)

logger = logging.getLogger(__name__)


@dataclass
class TimeInvestment:
    total_hours: float = 0.0
    sessions_count: int = 0
    average_session_length: float = 0.0


@dataclass
class WorkspaceMetrics:
    prompt_count: int = 0
    generation_count: int = 0
    code_changes: int = 0
    conversation_threads: int = 0


@dataclass
class WorkspaceAnalysis:
    """Structured profile of a workspace's conversation history"""
    id: str
    smart_label: str = ""
    project_type: str = DEFAULT_PROJECT_TYPE
    technologies: List[str] = field(default_factory=list)
    primary_technology: str = UNKNOWN_TECHNOLOGY
    current_status: str = DEFAULT_STATUS
    last_activity: Optional[int] = None  # epoch ms, None without timestamps
    activity_summary: str = ""
    key_topics: List[str] = field(default_factory=list)
    problems_solved: List[str] = field(default_factory=list)
    current_goals: List[str] = field(default_factory=list)
    time_investment: TimeInvestment = field(default_factory=TimeInvestment)
    metrics: WorkspaceMetrics = field(default_factory=WorkspaceMetrics)
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def combined_text(data: ConversationData, sessions: Sequence[SessionRecord]) -> str:
    """All prompt, generation and session-name text, lower-cased"""
    parts = [p.text for p in data.prompts]
    parts.extend(g.text for g in data.generations)
    parts.extend(s.name for s in sessions)
    return ' '.join(parts).lower()


def estimate_time_investment(data: ConversationData, sessions: Sequence[SessionRecord]) -> TimeInvestment:
    """Rough hours spent, from conversation volume and session count"""
    session_count = len(sessions) or 1
    entry_count = len(data.prompts) + len(data.generations)

    hours = max(MIN_ESTIMATED_HOURS, entry_count * HOURS_PER_ENTRY + session_count * HOURS_PER_SESSION)

    return TimeInvestment(
        total_hours=round(hours, 1),
        sessions_count=session_count,
        average_session_length=round(hours / session_count, 1),
    )


def last_activity(data: ConversationData) -> Optional[int]:
    timestamps = [e.timestamp_ms for e in data.entries if e.timestamp_ms > 0]
    return max(timestamps) if timestamps else None


def summarize_activity(analysis: WorkspaceAnalysis) -> str:
    metrics = analysis.metrics
    summary = f"{analysis.project_type} using {analysis.primary_technology}. "

    if metrics.code_changes > 0:
        summary += f"Active development with {metrics.code_changes} code modifications. "

    if metrics.prompt_count > 10:
        summary += f"Extensive conversation history ({metrics.prompt_count} prompts). "

    return summary.strip()


def analyze(
    workspace_id: str,
    data: Optional[ConversationData],
    sessions: Optional[Sequence[SessionRecord]] = None
) -> WorkspaceAnalysis:
    """
    Build the WorkspaceAnalysis for one workspace.

    Missing data or sessions are treated as empty; this never raises for
    data-shape reasons.
    """
    data = data or ConversationData()
    sessions = list(sessions or [])

    logger.info("Analyzing workspace %s (%d prompts, %d generations, %d sessions)",
                workspace_id, len(data.prompts), len(data.generations), len(sessions))

    analysis = WorkspaceAnalysis(
        id=workspace_id,
        metrics=WorkspaceMetrics(
            prompt_count=len(data.prompts),
            generation_count=len(data.generations),
            code_changes=data.code_changes,
            conversation_threads=len(sessions),
        ),
    )

    all_text = combined_text(data, sessions)

    analysis.smart_label = generate_smart_label(all_text, sessions, data.prompts)
    analysis.technologies = detect_technologies(all_text)
    analysis.primary_technology = analysis.technologies[0] if analysis.technologies else UNKNOWN_TECHNOLOGY
    analysis.project_type = determine_project_type(all_text)
    analysis.current_status = detect_status(data)
    analysis.key_topics = extract_key_topics(all_text)
    analysis.time_investment = estimate_time_investment(data, sessions)
    analysis.last_activity = last_activity(data)
    analysis.activity_summary = summarize_activity(analysis)
    analysis.problems_solved = extract_problems_solved(all_text)
    analysis.current_goals = extract_current_goals(all_text)

    signals = ConfidenceSignals(
        technology_count=len(analysis.technologies),
        project_type=analysis.project_type,
        smart_label=analysis.smart_label,
        prompt_count=analysis.metrics.prompt_count,
        code_changes=analysis.metrics.code_changes,
        text_length=len(all_text),
    )
    analysis.confidence = calculate_confidence(signals)
    logger.debug("Confidence rules for %s: %s", workspace_id, ", ".join(matched_rules(signals)) or "none")

    logger.info("Analysis complete for %s: %s (%d%% confidence)",
                workspace_id, analysis.smart_label, round(analysis.confidence * 100))

    return analysis
