"""
Central constants for ChatTrail.

Scoring heuristics are hand-tuned; change them here, never inline.
"""

# Cursor state database layout
STATE_DB_NAME = "state.vscdb"
WORKSPACE_JSON_NAME = "workspace.json"
ITEM_PROMPTS_KEY = "aiService.prompts"
ITEM_GENERATIONS_KEY = "aiService.generations"
ITEM_COMPOSER_KEY = "composer.composerData"
EDITOR_APP_DIRS = ["Cursor", "Code"]
STORAGE_ENV_VAR = "CHATTRAIL_WORKSPACE_STORAGE"

# Analysis caps
MAX_TECHNOLOGIES = 5
MAX_KEY_TOPICS = 8
MAX_EXTRACTED_STATEMENTS = 3
MAX_SESSION_TOPICS = 10
MIN_TOPIC_LENGTH = 4
MIN_TOPIC_COUNT = 2
STATUS_RECENT_WINDOW = 5

# Defaults when nothing scores
DEFAULT_PROJECT_TYPE = "Unknown"
DEFAULT_STATUS = "Active"
DEFAULT_SMART_LABEL = "Development Project"
UNKNOWN_TECHNOLOGY = "Unknown"
CODE_APPLY_TYPE = "apply"

PROJECT_STATUSES = [
    "Setup",
    "Active",
    "Problem Solving",
    "Documentation",
    "Complete",
    "Abandoned",
]

# Confidence model
CONFIDENCE_BASE = 0.3
CONFIDENCE_HAS_TECHNOLOGY = 0.2
CONFIDENCE_MANY_TECHNOLOGIES = 0.1
CONFIDENCE_MANY_TECHNOLOGIES_MIN = 2
CONFIDENCE_PROJECT_TYPE = 0.2
CONFIDENCE_SPECIFIC_LABEL = 0.2
CONFIDENCE_PROMPTS = 0.1
CONFIDENCE_PROMPTS_MIN = 5
CONFIDENCE_MANY_PROMPTS = 0.1
CONFIDENCE_MANY_PROMPTS_MIN = 20
CONFIDENCE_CODE_CHANGES = 0.1
CONFIDENCE_TEXT_LENGTH = 0.1
CONFIDENCE_TEXT_LENGTH_MIN = 1000

# Time investment estimate
HOURS_PER_ENTRY = 0.1
HOURS_PER_SESSION = 0.5
MIN_ESTIMATED_HOURS = 0.5

# Relevance scoring
MIN_QUERY_TERM_LENGTH = 3
TERM_FREQUENCY_WEIGHT = 0.1
TERM_COVERAGE_WEIGHT = 0.5
SEARCH_TYPE_BOOST = 1.5
PROBLEM_KEYWORD_BOOST = 1.3
SNIPPET_LENGTH = 150
SNIPPET_LEAD = 50
SEARCH_TYPES = ["content", "keywords", "technical", "problem", "solution", "all"]
DEFAULT_SEARCH_TYPE = "all"

# Caller-side thresholds
DEFAULT_SEARCH_LIMIT = 10
MIN_RELEVANCE_SCORE = 0.1
MIN_SIMILARITY_SCORE = 0.1
MIN_PROBLEM_SIMILARITY = 0.2
MAX_RELATED_SNIPPETS = 3
MAX_PROBLEM_TECHNOLOGIES = 5

# Composer session browsing
SESSION_STATUSES = ["Active", "Completed", "Abandoned"]
ACTIVITY_LEVELS = ["High", "Medium", "Low"]
SESSION_ABANDONED_DAYS = 30
SESSION_RECENT_DAYS = 7
SESSION_COMPLETION_KEYWORDS = ("done", "finished", "complete", "deployed", "released", "final", "working")
HIGH_CONVERSATION_DENSITY = 10  # entries per hour
HIGH_CODE_CHANGE_DENSITY = 2
MEDIUM_CONVERSATION_DENSITY = 5
MEDIUM_CODE_CHANGE_DENSITY = 1
SESSION_SORT_KEYS = ["modified", "created", "activity", "duration"]
DEFAULT_SESSION_SORT = "modified"
DEFAULT_SESSION_NAME = "Untitled Session"
MAX_SUMMARY_TOPICS = 5

# Request server
DEFAULT_SOCKET_PATH = "/tmp/chattrail.sock"
