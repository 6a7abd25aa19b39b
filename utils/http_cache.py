#!/usr/bin/env python3
"""HTTP validators and freshness headers for diff responses."""

import base64
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Dict, Optional

from .diff_models import DiffQuery, DiffResult

JSON_CONTENT_TYPE = "application/json"
NO_STORE = "no-cache, no-store, must-revalidate"


def _quoted_b64(text: str) -> str:
    return '"' + base64.b64encode(text.encode("utf-8")).decode("ascii") + '"'


def compute_etag(query: DiffQuery, first_sha: Optional[str], last_sha: Optional[str]) -> str:
    return _quoted_b64(f"{query.repo}|{query.file}|{query.since}|{first_sha or ''}|{last_sha or ''}")


def no_changes_etag(query: DiffQuery) -> str:
    return _quoted_b64(f"{query.repo}|{query.file}|{query.since}|no-changes")


def etag_for(query: DiffQuery, result: DiffResult) -> str:
    if result.status == "no_changes":
        return no_changes_etag(query)
    return compute_etag(query, result.first_sha, result.last_sha)


def http_date(timestamp: Optional[str]) -> Optional[str]:
    """Render an ISO 8601 timestamp as an RFC 1123 GMT date; None if unparseable."""
    if not timestamp:
        return None
    try:
        dt = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


def cache_control(ttl_s: int) -> str:
    return f"public, max-age={ttl_s}, s-maxage={ttl_s}"


def success_headers(query: DiffQuery, result: DiffResult, ttl_s: int, enabled: bool = True) -> Dict[str, str]:
    """Headers for a 200 response.

    With transport caching disabled only the content type is set.
    """
    headers = {"Content-Type": JSON_CONTENT_TYPE}
    if not enabled:
        return headers
    headers["Cache-Control"] = cache_control(ttl_s)
    headers["ETag"] = etag_for(query, result)
    headers["Vary"] = "Accept-Encoding"
    last_modified = http_date(result.last_modified)
    if last_modified:
        headers["Last-Modified"] = last_modified
    return headers


def error_headers() -> Dict[str, str]:
    """Headers for any 4xx/5xx response; errors are never cacheable."""
    return {"Content-Type": JSON_CONTENT_TYPE, "Cache-Control": NO_STORE}


def etag_matches(if_none_match: Optional[str], etag: str) -> bool:
    """Weak comparison of an If-None-Match header against an ETag."""
    if not if_none_match:
        return False
    candidates = [c.strip() for c in if_none_match.split(",")]
    if "*" in candidates:
        return True
    return any(c[2:] == etag if c.startswith("W/") else c == etag for c in candidates)
