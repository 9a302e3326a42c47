"""Rendering of webhook body and header templates."""

import json
import re
from enum import StrEnum

from purgehook.invalidation.pattern import InvalidationIntent

DEFAULT_HEADERS = {"Content-Type": "application/json"}


class Placeholder(StrEnum):
    """Placeholders recognised in webhook templates."""

    URLS = "${urls}"
    PURGE_ALL = "${purgeAll}"
    TIMESTAMP = "${timestamp}"
    PATTERN = "${pattern}"
    SECRET = "${secret}"


BODY_PLACEHOLDERS = (
    Placeholder.URLS,
    Placeholder.PURGE_ALL,
    Placeholder.TIMESTAMP,
    Placeholder.PATTERN,
)

_BODY_RE = re.compile("|".join(re.escape(p.value) for p in BODY_PLACEHOLDERS))


def _to_json(value: object) -> str:
    """Compact JSON with non-ASCII characters kept as-is."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _body_values(intent: InvalidationIntent) -> dict[str, str]:
    return {
        Placeholder.URLS.value: _to_json(intent.urls),
        Placeholder.PURGE_ALL.value: _to_json(intent.purge_all),
        # Bare value, the template supplies the quotes
        Placeholder.TIMESTAMP.value: _to_json(intent.timestamp)[1:-1],
        Placeholder.PATTERN.value: _to_json(intent.pattern),
    }


def render_body(template: str, intent: InvalidationIntent) -> str:
    """Substitute the invalidation intent into a body template.

    All occurrences of each placeholder are replaced in a single pass, so
    substituted values are never scanned for further placeholders.
    Placeholders missing from the template are simply not used.
    """
    values = _body_values(intent)
    return _BODY_RE.sub(lambda match: values[match.group(0)], template)


def render_headers(
    headers: dict[str, str] | None,
    secret: str | None = None,
) -> dict[str, str]:
    """Build request headers from header templates.

    Every ${secret} is replaced with the secret, or an empty string when no
    secret is configured. Configured headers take precedence over the default
    Content-Type.
    """
    rendered = dict(DEFAULT_HEADERS)
    for name, template in (headers or {}).items():
        if name.lower() == "content-type":
            rendered.pop("Content-Type", None)
        rendered[name] = template.replace(Placeholder.SECRET.value, secret or "")
    return rendered
