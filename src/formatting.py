"""
Output formatting for ChatTrail

Renders analyses and search results as plain text, markdown or JSON.
"""

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from typing import Any, List, Optional, Sequence

from analyzer import WorkspaceAnalysis
from history_store import WorkspaceInfo
from search import RelatedSession, SearchResult, SimilarProblem, group_by_type
from sessions import SessionDetail, SessionSummary

SNIPPET_PREVIEW = 200


def format_timestamp(timestamp_ms: Optional[int]) -> str:
    if not timestamp_ms:
        return "never"
    try:
        moment = datetime.fromtimestamp(timestamp_ms / 1000)
    except (OverflowError, OSError, ValueError):
        return "unknown"
    return moment.strftime('%Y-%m-%d %H:%M')


def percent(score: float) -> str:
    return f"{round(score * 100)}%"


def preview(text: str, length: int = SNIPPET_PREVIEW) -> str:
    return text[:length] + ('...' if len(text) > length else '')


def to_json(value: Any) -> str:
    """JSON for a dataclass or a list of dataclasses"""
    if is_dataclass(value):
        value = asdict(value)
    elif isinstance(value, (list, tuple)):
        value = [asdict(v) if is_dataclass(v) else v for v in value]
    return json.dumps(value, indent=2)


def format_analysis(analysis: WorkspaceAnalysis, fmt: str = "text") -> str:
    if fmt == "json":
        return to_json(analysis)

    markdown = fmt == "markdown"
    time = analysis.time_investment
    metrics = analysis.metrics
    lines = []

    if markdown:
        lines.extend([f"# {analysis.smart_label}", ""])
    else:
        lines.extend([f"📊 {analysis.smart_label}", "=" * 50])

    bullet = "- " if markdown else ""
    lines.extend([
        f"{bullet}Workspace: {analysis.id}",
        f"{bullet}Type: {analysis.project_type}",
        f"{bullet}Primary Technology: {analysis.primary_technology}",
        f"{bullet}Technologies: {', '.join(analysis.technologies) or 'None detected'}",
        f"{bullet}Status: {analysis.current_status}",
        f"{bullet}Last Activity: {format_timestamp(analysis.last_activity)}",
        f"{bullet}Confidence: {percent(analysis.confidence)}",
        "",
        analysis.activity_summary,
        "",
    ])

    sections = [
        ("Key Topics", analysis.key_topics),
        ("Problems Solved", analysis.problems_solved),
        ("Current Goals", analysis.current_goals),
    ]
    for title, items in sections:
        if not items:
            continue
        lines.append(f"## {title}" if markdown else f"{title}:")
        if markdown:
            lines.append("")
        lines.extend(f"- {item}" if markdown else f"  • {item}" for item in items)
        lines.append("")

    lines.append("## Time Investment" if markdown else "Time Investment:")
    if markdown:
        lines.append("")
    lines.extend([
        f"{bullet or '  '}{time.total_hours} hours over {time.sessions_count} sessions "
        f"(avg {time.average_session_length}h)",
        f"{bullet or '  '}{metrics.prompt_count} prompts, {metrics.generation_count} generations, "
        f"{metrics.code_changes} code changes, {metrics.conversation_threads} threads",
    ])

    return "\n".join(lines)


def format_search_results(results: Sequence[SearchResult], query: str, fmt: str = "text") -> str:
    if fmt == "json":
        return to_json(list(results))

    if not results:
        return f'No conversations found matching "{query}".'

    markdown = fmt == "markdown"
    counts = ", ".join(f"{count} {kind}" for kind, count in group_by_type(results).items())
    lines = [
        f'# Search Results for "{query}"' if markdown else f'🔍 Search Results for "{query}"',
        f"Found {len(results)} relevant conversations ({counts}):",
        "",
    ]

    for i, result in enumerate(results, 1):
        header = f"{i}. {result.type.upper()} ({percent(result.relevance_score)} relevance)"
        lines.append(f"**{header}**" if markdown else header)
        lines.append(f"   {format_timestamp(result.timestamp_ms)}")
        lines.append(f"   Matching terms: {', '.join(result.matching_terms)}")
        lines.append(f"   {result.context_snippet}")
        if result.conversation_id:
            lines.append(f"   ID: {result.conversation_id}")
        lines.append("")

    return "\n".join(lines)


def format_similar_problems(problems: Sequence[SimilarProblem], description: str, fmt: str = "text") -> str:
    if fmt == "json":
        return to_json(list(problems))

    if not problems:
        return f'No similar problems found for: "{description}".'

    markdown = fmt == "markdown"
    lines = [
        "# Similar Problems Found" if markdown else "🔍 Similar Problems Found",
        f'Searching for problems similar to: "{description}"',
        "",
    ]

    for i, problem in enumerate(problems, 1):
        mark = "✅" if problem.success else "❓"
        header = f"{i}. {mark} Problem ({percent(problem.relevance_score)} similar)"
        lines.append(f"**{header}**" if markdown else header)
        lines.append(f"   Technologies: {', '.join(problem.technology_stack) or 'Not specified'}")
        lines.append(f"   Problem: {preview(problem.problem_description)}")
        lines.append(f"   Solution: {preview(problem.solution_approach)}")
        if problem.conversation_link:
            lines.append(f"   Conversation ID: {problem.conversation_link}")
        lines.append("")

    return "\n".join(lines)


def format_related_sessions(sessions: Sequence[RelatedSession], search_text: str, fmt: str = "text") -> str:
    if fmt == "json":
        return to_json(list(sessions))

    if not sessions:
        return f'No sessions related to "{search_text}".'

    markdown = fmt == "markdown"
    lines = [
        "# Related Sessions" if markdown else "🔗 Related Sessions",
        f'Sessions discussing: "{search_text}"',
        "",
    ]

    for i, session in enumerate(sessions, 1):
        name = session.session_name or session.composer_id
        header = f"{i}. {name} ({percent(session.similarity)} similar)"
        lines.append(f"**{header}**" if markdown else header)
        lines.append(f"   {session.reason_for_match}")
        lines.append(f"   Last activity: {format_timestamp(session.last_activity)}")
        for snippet in session.relevant_conversations:
            lines.append(f"   - [{snippet.type}] {preview(snippet.content, 120)}")
        lines.append("")

    return "\n".join(lines)


STATUS_ICONS = {"Active": "🚀", "Completed": "✅", "Abandoned": "🚫"}
ACTIVITY_ICONS = {"High": "⚡", "Medium": "🔥", "Low": "💤"}
TIMELINE_ENTRIES = 10
RECENT_CODE_CHANGES = 5


def format_sessions(sessions: Sequence[SessionSummary], workspace_id: str, fmt: str = "text") -> str:
    if fmt == "json":
        return to_json(list(sessions))

    if not sessions:
        return f"No composer sessions found in workspace {workspace_id}."

    markdown = fmt == "markdown"
    title = f"Composer Sessions ({len(sessions)} sessions)"
    lines = [f"# {title}" if markdown else f"🎯 {title}", ""]

    for i, session in enumerate(sessions, 1):
        header = f"{i}. {session.name}"
        lines.append(f"**{header}**" if markdown else header)
        lines.append(
            f"   {STATUS_ICONS.get(session.status, '')} {session.status} | "
            f"{ACTIVITY_ICONS.get(session.activity_level, '')} {session.activity_level} | "
            f"Duration: {session.duration}"
        )
        lines.append(
            f"   {session.prompt_count} prompts, {session.generation_count} responses, "
            f"{session.code_changes} code changes"
        )
        if session.top_topics:
            lines.append(f"   Topics: {', '.join(session.top_topics)}")
        lines.append(f"   Last activity: {format_timestamp(session.last_activity)}")
        lines.append(f"   ID: {session.composer_id}")
        lines.append("")

    return "\n".join(lines)


def format_session_detail(detail: SessionDetail, fmt: str = "text") -> str:
    if fmt == "json":
        return to_json(detail)

    markdown = fmt == "markdown"
    summary = detail.summary
    bullet = "- " if markdown else "  "
    lines = [f"# {summary.name}", ""] if markdown else [f"🎯 {summary.name}", "=" * 50]

    lines.extend([
        f"{bullet}Session ID: {summary.composer_id}",
        f"{bullet}Status: {STATUS_ICONS.get(summary.status, '')} {summary.status}",
        f"{bullet}Activity Level: {ACTIVITY_ICONS.get(summary.activity_level, '')} {summary.activity_level}",
        f"{bullet}Duration: {summary.duration}",
        f"{bullet}Created: {format_timestamp(summary.created_at)}",
        f"{bullet}Last Updated: {format_timestamp(summary.last_activity)}",
        f"{bullet}Mode: {detail.unified_mode} (force: {detail.force_mode})",
        f"{bullet}{summary.prompt_count} prompts, {summary.generation_count} generations, "
        f"{summary.code_changes} code changes",
        "",
    ])

    if detail.topics:
        lines.append("## Key Topics" if markdown else "Key Topics:")
        lines.extend(f"{bullet}{topic}" for topic in detail.topics)
        lines.append("")

    changes = detail.code_change_entries[-RECENT_CODE_CHANGES:]
    if changes:
        lines.append("## Recent Code Changes" if markdown else "Recent Code Changes:")
        lines.extend(
            f"{bullet}{format_timestamp(c.timestamp_ms)}: {preview(c.text, 80)}" for c in changes
        )
        lines.append("")

    lines.append(
        f"## Conversation Timeline (last {TIMELINE_ENTRIES})" if markdown
        else f"Conversation Timeline (last {TIMELINE_ENTRIES}):"
    )
    for entry in detail.entries[-TIMELINE_ENTRIES:]:
        icon = "👤" if entry.role == "prompt" else "🤖"
        lines.append(f"{bullet}{icon} {format_timestamp(entry.timestamp_ms)}: {preview(entry.text, 100)}")

    return "\n".join(lines)


def format_workspaces(workspaces: List[WorkspaceInfo], fmt: str = "text") -> str:
    if fmt == "json":
        return to_json(workspaces)

    if not workspaces:
        return "No Cursor workspaces found."

    markdown = fmt == "markdown"
    lines = ["# Workspaces" if markdown else "📁 Workspaces", ""]
    for workspace in workspaces:
        modified = (workspace.last_modified or "")[:16].replace("T", " ")
        if markdown:
            lines.append(f"- **{workspace.name}** `{workspace.workspace_id}` ({modified})")
        else:
            lines.append(f"  {workspace.workspace_id}  {workspace.name.ljust(30)} {modified}")
    return "\n".join(lines)
