"""
Conversation search for ChatTrail.

The caller side of the relevance and similarity scorers: applies the
minimum-score thresholds, sorts best-first and limits the result count.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from constants import (
    CODE_APPLY_TYPE,
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_SEARCH_TYPE,
    MAX_PROBLEM_TECHNOLOGIES,
    MAX_RELATED_SNIPPETS,
    MIN_PROBLEM_SIMILARITY,
    MIN_RELEVANCE_SCORE,
    MIN_SIMILARITY_SCORE,
    SEARCH_TYPES,
)
from conversation import ConversationData, ConversationEntry, SessionConversation
from patterns import PROBLEM_KEYWORDS, SEARCH_TECH_KEYWORDS, contains_any, keywords_present
from relevance import calculate_problem_similarity, score_relevance, tokenize_query
from similarity import score_similarity, snippet_relevance
from topic_extractor import extract_session_topics

logger = logging.getLogger(__name__)

NO_SOLUTION = "No solution found"


@dataclass
class SearchResult:
    workspace_id: str
    conversation_id: str
    timestamp_ms: int
    type: str  # 'prompt', 'generation' or 'solution'
    content: str
    relevance_score: float
    context_snippet: str
    matching_terms: List[str] = field(default_factory=list)


@dataclass
class SimilarProblem:
    workspace_id: str
    problem_description: str
    solution_approach: str
    success: bool
    relevance_score: float
    conversation_link: str
    technology_stack: List[str] = field(default_factory=list)


@dataclass
class ConversationSnippet:
    timestamp_ms: int
    type: str
    content: str
    relevance_score: float


@dataclass
class RelatedSession:
    composer_id: str
    session_name: str
    similarity: float
    matching_topics: List[str]
    relevant_conversations: List[ConversationSnippet]
    last_activity: int
    reason_for_match: str


def validate_search_type(search_type: str) -> str:
    if search_type not in SEARCH_TYPES:
        raise ValueError(
            f"Invalid search type '{search_type}'. Choose from: {', '.join(SEARCH_TYPES)}"
        )
    return search_type


def _result_type(entry: ConversationEntry) -> str:
    if entry.role == 'prompt':
        return 'prompt'
    return 'solution' if entry.is_code_change else 'generation'


def search_conversations(
    data: ConversationData,
    query: str,
    search_type: str = DEFAULT_SEARCH_TYPE,
    limit: int = DEFAULT_SEARCH_LIMIT,
    min_score: float = MIN_RELEVANCE_SCORE,
    workspace_id: str = ""
) -> List[SearchResult]:
    """
    Search one workspace's prompts and generations for a query.

    Only entries scoring strictly above min_score are returned, best first.

    Raises:
        ValueError: If search_type is not one of SEARCH_TYPES
    """
    validate_search_type(search_type)
    terms = tokenize_query(query)

    results = []
    for entry in data.entries:
        scored = score_relevance(terms, search_type, entry.text)
        if scored.score > min_score:
            results.append(SearchResult(
                workspace_id=workspace_id,
                conversation_id=entry.id,
                timestamp_ms=entry.timestamp_ms,
                type=_result_type(entry),
                content=entry.text,
                relevance_score=scored.score,
                context_snippet=scored.snippet,
                matching_terms=scored.matched_terms,
            ))

    results.sort(key=lambda r: r.relevance_score, reverse=True)
    logger.debug("Search '%s' (%s) matched %d entries", query, search_type, len(results))
    return results[:limit]


def find_solution(prompt: ConversationEntry, generations: Sequence[ConversationEntry]) -> Optional[ConversationEntry]:
    """The generation answering a prompt, matched on generation UUID"""
    if not prompt.id:
        return None
    for generation in generations:
        if generation.id == prompt.id:
            return generation
    return None


def find_similar_problems(
    data: ConversationData,
    description: str,
    limit: int = DEFAULT_SEARCH_LIMIT,
    min_similarity: float = MIN_PROBLEM_SIMILARITY,
    workspace_id: str = ""
) -> List[SimilarProblem]:
    """Past prompts that describe a problem similar to `description`"""
    terms = tokenize_query(description)

    problems = []
    for prompt in data.prompts:
        text = prompt.text.lower()
        if not contains_any(text, PROBLEM_KEYWORDS):
            continue

        similarity = calculate_problem_similarity(text, terms)
        if similarity <= min_similarity:
            continue

        solution = find_solution(prompt, data.generations)
        problems.append(SimilarProblem(
            workspace_id=workspace_id,
            problem_description=prompt.text,
            solution_approach=solution.text if solution and solution.text else NO_SOLUTION,
            success=bool(solution and solution.subtype == CODE_APPLY_TYPE),
            relevance_score=similarity,
            conversation_link=prompt.id,
            technology_stack=keywords_present(text, SEARCH_TECH_KEYWORDS, MAX_PROBLEM_TECHNOLOGIES),
        ))

    problems.sort(key=lambda p: p.relevance_score, reverse=True)
    return problems[:limit]


def _relevant_snippets(conversation: SessionConversation, query_topics: List[str]) -> List[ConversationSnippet]:
    snippets = []
    for entry in conversation.entries:
        relevance = snippet_relevance(entry.text, query_topics)
        if relevance > 0:
            snippets.append(ConversationSnippet(
                timestamp_ms=entry.timestamp_ms,
                type=entry.role,
                content=entry.text,
                relevance_score=relevance,
            ))
    snippets.sort(key=lambda s: s.relevance_score, reverse=True)
    return snippets[:MAX_RELATED_SNIPPETS]


def find_related_sessions(
    search_text: str,
    conversations: Sequence[SessionConversation],
    min_similarity: float = MIN_SIMILARITY_SCORE
) -> List[RelatedSession]:
    """Composer sessions whose topics overlap the search text, most similar first"""
    query_topics = extract_session_topics(search_text.lower())

    related = []
    for conversation in conversations:
        session_topics = extract_session_topics(conversation.text)
        similarity = score_similarity(query_topics, session_topics)
        if similarity.score <= min_similarity:
            continue

        related.append(RelatedSession(
            composer_id=conversation.session.composer_id,
            session_name=conversation.session.name,
            similarity=similarity.score,
            matching_topics=similarity.matching_topics,
            relevant_conversations=_relevant_snippets(conversation, query_topics),
            last_activity=conversation.session.last_updated_at,
            reason_for_match=f"Shared topics: {', '.join(similarity.matching_topics[:3])}",
        ))

    related.sort(key=lambda r: r.similarity, reverse=True)
    return related


def group_by_type(results: Sequence[SearchResult]) -> Dict[str, int]:
    """Result counts per result type"""
    counts: Dict[str, int] = {}
    for result in results:
        counts[result.type] = counts.get(result.type, 0) + 1
    return counts
