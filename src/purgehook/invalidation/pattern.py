"""Interpretation of raw cache invalidation patterns."""

from dataclasses import dataclass
from datetime import UTC, datetime

# Ghost signals a full site purge with either of these
PURGE_ALL_PATTERNS = frozenset({"/$/", "/*"})


@dataclass(frozen=True)
class InvalidationIntent:
    """Structured result of interpreting an invalidation pattern."""

    urls: list[str]
    purge_all: bool
    pattern: str
    timestamp: str


def utc_timestamp(now: datetime | None = None) -> str:
    """Format a UTC instant as ISO-8601 with milliseconds and a Z suffix."""
    now = now or datetime.now(UTC)
    return now.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def interpret_pattern(pattern: str, public_url: str) -> InvalidationIntent:
    """Convert a raw invalidation pattern into an InvalidationIntent.

    Patterns other than the purge-all sentinels are comma-separated paths,
    e.g. "/post-permalink" or "/, /page/*, /rss". Each fragment is stripped
    and prefixed with the public URL. Order and duplicates are kept, and an
    empty fragment yields the bare public URL.

    Args:
        pattern: Raw pattern as sent by the origin
        public_url: Public base URL of the site

    Returns:
        InvalidationIntent stamped with the current time
    """
    purge_all = pattern in PURGE_ALL_PATTERNS
    if purge_all:
        urls = [f"{public_url}/*"]
    else:
        urls = [f"{public_url}{fragment.strip()}" for fragment in pattern.split(",")]

    return InvalidationIntent(
        urls=urls,
        purge_all=purge_all,
        pattern=pattern,
        timestamp=utc_timestamp(),
    )
