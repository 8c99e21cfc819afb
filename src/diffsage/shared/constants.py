"""Centralized defaults for diffsage. Overridable via configuration."""

from __future__ import annotations

# =============================================================================
# MODEL
# =============================================================================

DEFAULT_MODEL = "google-gla:gemini-2.5-flash"
DEFAULT_MAX_TOKENS = 65_536
DEFAULT_TEMPERATURE = 0.0

# =============================================================================
# RETRY / BACKOFF
# =============================================================================

DEFAULT_RETRY_LIMIT = 3
DEFAULT_RETRY_BASE_DELAY_SECONDS = 1.0
DEFAULT_RETRY_MAX_DELAY_SECONDS = 30.0
DEFAULT_RETRY_BACKOFF_MULTIPLIER = 2.0

RETRYABLE_MESSAGE_MARKERS = (
    "network",
    "timeout",
    "rate limit",
    "overloaded",
    "service unavailable",
    "internal server error",
    "bad gateway",
    "gateway timeout",
)
RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504, 529})

# =============================================================================
# CACHE
# =============================================================================

DEFAULT_CACHE_MAX_ENTRIES = 1_000
DEFAULT_CACHE_TTL_SECONDS = 3_600.0

# =============================================================================
# ADMISSION
# =============================================================================

DEFAULT_RATE_LIMIT_REQUESTS = 10
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 60.0

MAX_FILES_PER_REVIEW = 50
MAX_FILE_SIZE_BYTES = 1_048_576
MAX_TOTAL_SIZE_BYTES = 10_485_760
MAX_LINE_LENGTH = 10_000
MAX_FILENAME_LENGTH = 255

ALLOWED_EXTENSIONS = frozenset(
    {
        # Programming languages
        ".ts",
        ".tsx",
        ".js",
        ".jsx",
        ".mjs",
        ".cjs",
        ".py",
        ".java",
        ".go",
        ".rs",
        ".cpp",
        ".c",
        ".h",
        ".php",
        ".rb",
        ".swift",
        ".kt",
        ".cs",
        ".vb",
        # Web
        ".html",
        ".css",
        ".scss",
        ".sass",
        ".less",
        # Data formats
        ".json",
        ".xml",
        ".yaml",
        ".yml",
        ".toml",
        # Documentation
        ".md",
        ".txt",
        ".rst",
        # Scripts
        ".sh",
        ".bat",
        ".ps1",
        # Database / schema
        ".sql",
        ".graphql",
        ".proto",
        # Containers
        ".dockerfile",
        "dockerfile",
    }
)

SPECIAL_FILENAMES = frozenset(
    {
        ".gitignore",
        ".env",
        ".eslintrc",
        ".prettierrc",
        ".babelrc",
        ".npmrc",
        ".nvmrc",
        ".editorconfig",
        ".dockerignore",
        ".htaccess",
    }
)

# =============================================================================
# REVIEW
# =============================================================================

NO_ISSUES_SUMMARY = "✅ Great work! No issues were found in the code."
NO_ISSUES_SHORT_SUMMARY = "No issues found."

DEFAULT_FAILURE_MESSAGE = "Failed to process AI review."
OVERLOADED_FAILURE_MESSAGE = "The model is overloaded. Please try again later."
