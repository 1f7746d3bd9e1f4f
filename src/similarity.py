"""
Topic-overlap similarity between a search string and a session.
"""

from dataclasses import dataclass, field
from typing import List, Sequence

from confidence import clamp


@dataclass(frozen=True)
class SimilarityScore:
    score: float
    matching_topics: List[str] = field(default_factory=list)


def score_similarity(query_topics: Sequence[str], session_topics: Sequence[str]) -> SimilarityScore:
    """
    |A & B| / max(|A|, |B|, 1).

    The denominator does not depend on argument order, so the score is
    symmetric. Matching topics are reported in query order.
    """
    query_set = set(query_topics)
    session_set = set(session_topics)
    common = query_set & session_set

    denominator = max(len(query_set), len(session_set), 1)

    matching = []
    for topic in query_topics:
        if topic in common and topic not in matching:
            matching.append(topic)

    return SimilarityScore(score=clamp(len(common) / denominator), matching_topics=matching)


def snippet_relevance(entry_text: str, query_topics: Sequence[str]) -> float:
    """Fraction of query topics that appear in one conversation entry"""
    if not query_topics:
        return 0.0
    text = entry_text.lower()
    hits = sum(1 for topic in query_topics if topic in text)
    return hits / len(query_topics)
