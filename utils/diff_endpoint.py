#!/usr/bin/env python3
"""GET endpoint for file diffs: parameter handling, serialization, headers.

The handler is framework-neutral and returns a DiffResponse; make_wsgi_app
adapts it to any WSGI host.
"""

import json
import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import parse_qs

from clients.github_client import UpstreamFetchError
from configs.config import Config
from .diff_models import ClientInputError, DiffQuery, DiffResult
from .http_cache import error_headers, etag_for, etag_matches, success_headers

logger = logging.getLogger(__name__)

SERIALIZATION_MODES = ("blob", "records")
ROUTES = ("/", "/api/diff")

Resolver = Callable[[DiffQuery], DiffResult]


@dataclass
class DiffResponse:
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Dict[str, Any]] = None

    def json_text(self) -> str:
        return "" if self.body is None else json.dumps(self.body)


def serialize(result: DiffResult, mode: str) -> Dict[str, Any]:
    """Render a result as the blob (``diff``) or records (``commits``) body."""
    if mode == "records":
        body: Dict[str, Any] = {"commits": [r.model_dump(by_alias=True) for r in result.records]}
        if result.message:
            body["message"] = result.message
        return body
    return {"diff": result.blob() if result.records else result.message}


def _error(status: int, error: str, details: Optional[str] = None) -> DiffResponse:
    body: Dict[str, Any] = {"error": error}
    if details is not None:
        body["details"] = details
    return DiffResponse(status, error_headers(), body)


def handle_diff_request(
    params: Mapping[str, Any],
    resolver: Resolver,
    mode: Optional[str] = None,
    http_cache: Optional[bool] = None,
    ttl_s: Optional[int] = None,
    if_none_match: Optional[str] = None,
) -> DiffResponse:
    """Resolve one request into a status, headers and JSON body.

    Client errors never reach the resolver; upstream and unexpected errors
    become a uniform non-cacheable 500.
    """
    http_config = Config.get_http_cache_config()
    http_cache = http_config["enabled"] if http_cache is None else http_cache
    ttl_s = http_config["ttl_s"] if ttl_s is None else ttl_s

    try:
        query = DiffQuery.from_params(params)
    except ClientInputError as e:
        logger.info(f"Rejected diff request: {e}")
        return _error(400, e.message, e.details)

    mode = params.get("mode") or mode or Config.DIFF_MODE
    if mode not in SERIALIZATION_MODES:
        return _error(400, "Invalid parameters", f"mode must be one of {', '.join(SERIALIZATION_MODES)}")

    logger.info(f"Fetching diff for: {query.describe()}")
    try:
        result = resolver(query)
    except UpstreamFetchError as e:
        logger.error(f"Upstream error for {query.describe()} [{e.code}]: {e}")
        return _error(500, "Error fetching diff", str(e))
    except Exception as e:
        logger.exception(f"Unexpected error resolving {query.describe()}")
        return _error(500, "Error fetching diff", str(e))

    headers = success_headers(query, result, ttl_s, enabled=http_cache)
    if http_cache and etag_matches(if_none_match, etag_for(query, result)):
        headers.pop("Content-Type", None)
        return DiffResponse(304, headers, None)
    return DiffResponse(200, headers, serialize(result, mode))


def make_wsgi_app(
    resolver: Resolver,
    mode: Optional[str] = None,
    http_cache: Optional[bool] = None,
    ttl_s: Optional[int] = None,
):
    """Wrap handle_diff_request as a WSGI application."""

    def _send(start_response, response: DiffResponse):
        payload = response.json_text().encode("utf-8")
        status = f"{response.status} {HTTPStatus(response.status).phrase}"
        headers = list(response.headers.items())
        if response.status != 304:
            headers.append(("Content-Length", str(len(payload))))
        start_response(status, headers)
        return [payload] if response.status != 304 else []

    def app(environ, start_response):
        path = environ.get("PATH_INFO") or "/"
        if path not in ROUTES:
            return _send(start_response, _error(404, "Not found"))
        if environ.get("REQUEST_METHOD", "GET") != "GET":
            response = _error(405, "Method not allowed")
            response.headers["Allow"] = "GET"
            return _send(start_response, response)

        raw = parse_qs(environ.get("QUERY_STRING", ""))
        params = {name: values[0] for name, values in raw.items() if values}
        response = handle_diff_request(
            params,
            resolver,
            mode=mode,
            http_cache=http_cache,
            ttl_s=ttl_s,
            if_none_match=environ.get("HTTP_IF_NONE_MATCH"),
        )
        return _send(start_response, response)

    return app
