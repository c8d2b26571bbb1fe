"""HTTP helpers for registry traffic.

Transport failures never escape these helpers. GET retries with exponential
backoff and reports exhaustion as status 0; POST is sent once and yields None
when the registry cannot be reached.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

import requests

from ..constants import Constants
from .logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)

Fetched = Tuple[int, Dict[str, str], bytes]


def _with_user_agent(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    merged = {"User-Agent": Constants.USER_AGENT}
    merged.update(headers or {})
    return merged


def _backoff(attempt: int) -> float:
    return Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1))


def _send(
    send: Callable[..., requests.Response],
    method: str,
    url: str,
    attempt: int,
    **kwargs: Any
) -> requests.Response:
    """One request with DEBUG traces around it; transport errors propagate."""
    target = safe_url(url)
    debug = is_debug_enabled(logger)
    if debug:
        logger.debug(
            "%s %s",
            method,
            target,
            extra=extra_context(event="http_request", component="http_client",
                                action=method, target=target, attempt=attempt),
        )
    with Timer() as t:
        response = send(url, timeout=Constants.REQUEST_TIMEOUT, **kwargs)
    if debug:
        logger.debug(
            "%s %s -> %s",
            method,
            target,
            response.status_code,
            extra=extra_context(event="http_response", component="http_client", action=method,
                                status_code=response.status_code, duration_ms=t.duration_ms(),
                                target=target),
        )
    return response


def robust_get(
    url: str,
    *,
    session: Optional[requests.Session] = None,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Fetched:
    """GET ``url`` with retries.

    Returns:
        (status_code, headers, body). status_code is 0 when every attempt
        failed at the transport level.
    """
    getter = session.get if session is not None else requests.get
    failure = None

    for attempt in range(1, Constants.HTTP_RETRY_MAX + 1):
        if attempt > 1:
            time.sleep(_backoff(attempt - 1))
        try:
            response = _send(getter, "GET", url, attempt, headers=_with_user_agent(headers), **kwargs)
        except requests.Timeout:
            failure = "timeout"
        except requests.RequestException as exc:
            failure = str(exc)
        else:
            return response.status_code, dict(response.headers), response.content
        logger.debug(
            "GET attempt %d failed: %s",
            attempt,
            failure,
            extra=extra_context(event="http_exception", component="http_client", action="GET",
                                attempt=attempt, target=safe_url(url)),
        )

    logger.warning("GET %s failed after %s attempts: %s", safe_url(url), Constants.HTTP_RETRY_MAX, failure)
    return 0, {}, b""


def get_json(
    url: str,
    *,
    session: Optional[requests.Session] = None,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """Like robust_get, with the body parsed as JSON (None unless a 200 parses)."""
    status_code, response_headers, body = robust_get(url, session=session, headers=headers, **kwargs)
    if status_code != 200 or not body:
        return status_code, response_headers, None
    try:
        return status_code, response_headers, json.loads(body.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.warning(
            "Response from %s is not valid JSON",
            safe_url(url),
            extra=extra_context(event="parse", component="http_client", action="get_json",
                                outcome="json_decode_error", target=safe_url(url)),
        )
        return status_code, response_headers, None


def safe_post(
    url: str,
    *,
    context: str,
    data: Optional[bytes] = None,
    session: Optional[requests.Session] = None,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any,
) -> Optional[requests.Response]:
    """POST ``data`` once.

    Args:
        context: Tag naming the operation in log messages, e.g. "publish".

    Returns:
        The response, or None on timeout or connection failure.
    """
    poster = session.post if session is not None else requests.post
    try:
        return _send(poster, "POST", url, 1, data=data, headers=_with_user_agent(headers), **kwargs)
    except requests.Timeout:
        logger.error("%s request timed out after %s seconds", context, Constants.REQUEST_TIMEOUT)
    except requests.RequestException as exc:
        logger.error("%s connection error: %s", context, exc)
    return None
