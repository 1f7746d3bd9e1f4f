"""
Topic and statement extraction for ChatTrail.

Frequency-based topics, regex-based goal / problem statements and the
human-friendly workspace label. Nothing here raises on odd input: no
match simply means an empty result.
"""

import re
from typing import Dict, FrozenSet, List, Optional, Sequence

from classifier import detect_technologies, determine_project_type
from constants import (
    DEFAULT_PROJECT_TYPE,
    DEFAULT_SMART_LABEL,
    MAX_EXTRACTED_STATEMENTS,
    MAX_KEY_TOPICS,
    MAX_SESSION_TOPICS,
    MIN_TOPIC_COUNT,
    MIN_TOPIC_LENGTH,
)
from conversation import ConversationEntry, SessionRecord
from patterns import GENERIC_LABEL_WORDS, SESSION_STOPWORDS, TOPIC_STOPWORDS

_PUNCTUATION = re.compile(r'[^\w\s]')

PROBLEM_PATTERNS = [
    re.compile(r'(?:fixed|solved|resolved|debugged)\s+([^.!?]{10,50})', re.IGNORECASE),
]

GOAL_PATTERNS = [
    re.compile(r'(?:want to|need to|trying to|goal is to|planning to)\s+([^.!?]{10,50})', re.IGNORECASE),
    re.compile(r'(?:implement|add|create|build)\s+([^.!?]{10,50})', re.IGNORECASE),
]

# Phrases that usually introduce what is being built
LABEL_PATTERNS = [
    re.compile(r'(?:building|creating|developing|working on)\s+(?:a\s+)?([a-zA-Z][a-zA-Z0-9\s]{3,25})', re.IGNORECASE),
    re.compile(r'(?:project|app|application|tool)\s+(?:called\s+)?([a-zA-Z][a-zA-Z0-9\s]{3,25})', re.IGNORECASE),
    re.compile(r'help.*?(?:with|create|build)\s+([a-zA-Z][a-zA-Z0-9\s]{3,25})', re.IGNORECASE),
]

_REQUEST_PREFIX = re.compile(
    r'^(how to|can you|help me|i want to|please|let\'s|let me|create|build|develop|make|'
    r'working on|building|understanding|review|fix|debug)',
    re.IGNORECASE
)
_ARTIFACT_WORDS = re.compile(
    r'\b(app|application|project|website|tool|service|system|code|file|script|program|software)\b',
    re.IGNORECASE
)
_NAME_NOISE = re.compile(r'[^\w\s-]')


def capitalize_words(text: str) -> str:
    """Upper-case the first letter of each space-separated word, lower the rest"""
    return ' '.join(word[:1].upper() + word[1:].lower() for word in text.split(' '))


def tokenize(text: str) -> List[str]:
    """Lower-case words with punctuation replaced by spaces"""
    return _PUNCTUATION.sub(' ', text.lower()).split()


def count_words(text: str, stopwords: FrozenSet[str]) -> Dict[str, int]:
    """Word counts in first-seen order, skipping short words and stopwords"""
    counts: Dict[str, int] = {}
    for word in tokenize(text):
        if len(word) < MIN_TOPIC_LENGTH or word in stopwords:
            continue
        counts[word] = counts.get(word, 0) + 1
    return counts


def _most_frequent(counts: Dict[str, int], min_count: int, limit: int) -> List[str]:
    # sorted() is stable: equal counts keep first-seen order
    frequent = [(w, c) for w, c in counts.items() if c >= min_count]
    frequent.sort(key=lambda item: -item[1])
    return [w for w, _ in frequent[:limit]]


def extract_key_topics(text: str) -> List[str]:
    """Up to eight recurring words (seen at least twice), title-cased"""
    counts = count_words(text, TOPIC_STOPWORDS)
    return [capitalize_words(w) for w in _most_frequent(counts, MIN_TOPIC_COUNT, MAX_KEY_TOPICS)]


def extract_session_topics(text: str, limit: int = MAX_SESSION_TOPICS) -> List[str]:
    """Most frequent lower-case words of a session or search string"""
    if not text:
        return []
    counts = count_words(text, SESSION_STOPWORDS)
    return _most_frequent(counts, 1, limit)


def _extract_statements(text: str, patterns: Sequence[re.Pattern]) -> List[str]:
    statements = []
    for pattern in patterns:
        for match in pattern.finditer(text):
            captured = match.group(1).strip()
            if captured:
                statements.append(capitalize_words(captured))
    return statements[:MAX_EXTRACTED_STATEMENTS]


def extract_problems_solved(text: str) -> List[str]:
    """Clauses following 'fixed', 'solved', 'resolved' or 'debugged'"""
    return _extract_statements(text, PROBLEM_PATTERNS)


def extract_current_goals(text: str) -> List[str]:
    """Clauses following 'want to', 'need to', 'implement', ..."""
    return _extract_statements(text, GOAL_PATTERNS)


def is_generic_text(text: str) -> bool:
    """Short phrases built around vague words like 'project' or 'bug'"""
    lower = text.lower()
    return any(term in lower for term in GENERIC_LABEL_WORDS) and len(text.split(' ')) < 4


def extract_project_name(text: str) -> Optional[str]:
    """Try to read a project name out of a session title or first prompt"""
    if not text or len(text) < 3:
        return None

    cleaned = _REQUEST_PREFIX.sub('', text, count=1)
    cleaned = _ARTIFACT_WORDS.sub('', cleaned)
    cleaned = _NAME_NOISE.sub('', cleaned).strip()

    words = [w for w in cleaned.split() if len(w) > 2]
    if 0 < len(words) <= 4:
        candidate = ' '.join(words)
        if 3 < len(candidate) < 40 and not is_generic_text(candidate):
            return capitalize_words(candidate)

    return None


def generate_smart_label(
    all_text: str,
    sessions: Sequence[SessionRecord],
    prompts: Sequence[ConversationEntry]
) -> str:
    """
    Human-friendly workspace label.

    Tried in order: composer session names, the first prompt, the detected
    technology and project type, "building a ..." phrases, then
    progressively vaguer fallbacks ending in 'Development Project'.
    """
    if sessions:
        names = ' '.join([s.name for s in sessions if s.name and len(s.name) > 3][:3])
        name = extract_project_name(names)
        if name and name != DEFAULT_SMART_LABEL:
            return name

    if prompts:
        first = prompts[0].text
        if first and len(first) > 10:
            name = extract_project_name(first)
            if name and name != DEFAULT_SMART_LABEL:
                return name

    technologies = detect_technologies(all_text)
    project_type = determine_project_type(all_text)

    if technologies and project_type != DEFAULT_PROJECT_TYPE:
        if project_type == 'MCP Development':
            return f"{technologies[0]} MCP Server"
        return f"{technologies[0]} {project_type}"

    for pattern in LABEL_PATTERNS:
        match = pattern.search(all_text)
        if match:
            candidate = match.group(1).strip()
            if 3 < len(candidate) < 30 and not is_generic_text(candidate):
                return capitalize_words(candidate)

    if technologies:
        return f"{technologies[0]} Project"

    if project_type != DEFAULT_PROJECT_TYPE:
        return project_type

    return DEFAULT_SMART_LABEL
