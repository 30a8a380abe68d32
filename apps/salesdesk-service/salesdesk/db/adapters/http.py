"""
HTTP plumbing shared by the REST-backed adapters.

Wraps ``requests`` calls so transport failures and error statuses come out
as typed repository outcomes. Connection details never reach the message.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from salesdesk.errors import (
    BackendUnavailable,
    Conflict,
    ConflictReason,
    NotFound,
    RepositoryError,
    ValidationFailed,
)

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


def _error_body(response: requests.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {"message": (response.text or "").strip()[:200]}
    return body if isinstance(body, dict) else {"message": str(body)[:200]}


def _message(body: dict) -> str:
    for key in ("message", "detail", "error_description", "error", "msg"):
        value = body.get(key)
        if value:
            return value if isinstance(value, str) else str(value)
    return "request rejected"


def error_from_response(response: requests.Response, collection: str) -> RepositoryError:
    """Map an HTTP error response to exactly one typed outcome."""
    status = response.status_code
    body = _error_body(response)
    message = _message(body)
    code = str(body.get("code") or body.get("error") or "")
    if status >= 500:
        logger.error("%s: backend returned %s", collection, status)
        return BackendUnavailable()
    if status in (401, 403):
        # a rejected service credential is a deployment fault, not caller input
        logger.error("%s: backend rejected credentials (%s)", collection, status)
        return BackendUnavailable()
    if status == 409 or code in (UNIQUE_VIOLATION, FOREIGN_KEY_VIOLATION):
        logger.warning("%s: conflict from backend code=%s", collection, code or status)
        lowered = message.lower()
        if code == UNIQUE_VIOLATION or "unique" in lowered or "duplicate" in lowered:
            return Conflict(ConflictReason.DUPLICATE_EMAIL, "Email is already registered")
        return Conflict(ConflictReason.HAS_DEPENDENTS, "Record is referenced by other records")
    if status == 404:
        return NotFound(collection)
    logger.warning("%s: request rejected with %s", collection, status)
    return ValidationFailed({collection: message})


def send(
    session: requests.Session,
    method: str,
    url: str,
    collection: str,
    timeout: float,
    **kwargs: Any,
) -> requests.Response:
    """Perform one request; raises typed outcomes for transport and HTTP errors."""
    logger.debug("%s %s", method, url)
    try:
        response = session.request(method, url, timeout=timeout, **kwargs)
    except (requests.ConnectionError, requests.Timeout) as exc:
        logger.error("%s: backend unreachable: %s", collection, exc.__class__.__name__)
        raise BackendUnavailable() from None
    except requests.RequestException as exc:
        logger.error("%s: request failed: %s", collection, exc.__class__.__name__)
        raise BackendUnavailable() from None
    if response.status_code >= 400:
        raise error_from_response(response, collection)
    return response


def json_or_none(response: requests.Response) -> Optional[Any]:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        logger.error("unexpected non-JSON response (%s bytes)", len(response.content))
        raise BackendUnavailable() from None
