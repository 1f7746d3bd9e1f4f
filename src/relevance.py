"""
Relevance scoring for conversation search.

Scores a single document against a free-text query. The scorer never
filters; callers decide which scores are too low to show.
"""

from dataclasses import dataclass, field
from typing import List, Sequence

from confidence import clamp
from constants import (
    MIN_QUERY_TERM_LENGTH,
    PROBLEM_KEYWORD_BOOST,
    SEARCH_TYPE_BOOST,
    SNIPPET_LEAD,
    SNIPPET_LENGTH,
    TERM_COVERAGE_WEIGHT,
    TERM_FREQUENCY_WEIGHT,
)
from patterns import (
    PROBLEM_KEYWORDS,
    SEARCH_TECH_KEYWORDS,
    SOLUTION_KEYWORDS,
    contains_any,
)

# Search types whose matching documents get a boost, and the keyword
# list a document must touch to earn it
TYPE_SIGNALS = {
    'technical': SEARCH_TECH_KEYWORDS,
    'problem': PROBLEM_KEYWORDS,
    'solution': SOLUTION_KEYWORDS,
}


@dataclass(frozen=True)
class RelevanceScore:
    score: float
    snippet: str
    matched_terms: List[str] = field(default_factory=list)


def tokenize_query(query: str) -> List[str]:
    """Lower-cased whitespace terms longer than two characters"""
    return [t for t in query.lower().split() if len(t) >= MIN_QUERY_TERM_LENGTH]


def find_matching_terms(text: str, query_terms: Sequence[str]) -> List[str]:
    return [term for term in query_terms if term in text]


def has_type_signal(text: str, search_type: str) -> bool:
    keywords = TYPE_SIGNALS.get(search_type)
    return bool(keywords) and contains_any(text, keywords)


def calculate_relevance(text: str, query_terms: Sequence[str], search_type: str) -> float:
    """
    Term-frequency relevance of a lower-cased document.

    Each present term adds 0.1 per occurrence, coverage of the query adds
    up to 0.5, and a matching search-type signal multiplies by 1.5.
    """
    if not query_terms:
        return 0.0

    score = 0.0
    matched = 0
    for term in query_terms:
        frequency = text.count(term)
        if frequency:
            matched += 1
            score += frequency * TERM_FREQUENCY_WEIGHT

    score += matched / len(query_terms) * TERM_COVERAGE_WEIGHT

    if has_type_signal(text, search_type):
        score *= SEARCH_TYPE_BOOST

    return clamp(score)


def create_context_snippet(
    text: str,
    query_terms: Sequence[str],
    max_length: int = SNIPPET_LENGTH
) -> str:
    """Window of text around the earliest query term, '...' where cut"""
    positions = [text.find(term) for term in query_terms]
    positions = [p for p in positions if p != -1]

    if not positions:
        return text[:max_length] + ('...' if len(text) > max_length else '')

    first = min(positions)
    start = max(0, first - SNIPPET_LEAD)
    end = min(len(text), first + max_length - SNIPPET_LEAD)

    snippet = text[start:end]
    if start > 0:
        snippet = '...' + snippet
    if end < len(text):
        snippet = snippet + '...'
    return snippet


def score_relevance(query_terms: Sequence[str], search_type: str, entry_text: str) -> RelevanceScore:
    """Score one document and build its snippet and matched-term list"""
    text = (entry_text or '').lower()
    return RelevanceScore(
        score=calculate_relevance(text, query_terms, search_type),
        snippet=create_context_snippet(text, query_terms),
        matched_terms=find_matching_terms(text, query_terms),
    )


def calculate_problem_similarity(text: str, problem_terms: Sequence[str]) -> float:
    """Share of problem terms present, boosted when the text reads like a problem"""
    if not problem_terms:
        return 0.0

    matches = sum(1 for term in problem_terms if term in text)
    similarity = matches / len(problem_terms)

    if contains_any(text, PROBLEM_KEYWORDS):
        similarity *= PROBLEM_KEYWORD_BOOST

    return clamp(similarity)
