"""BounceBan API client: single email verification and credential test."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import requests

from .config import Settings
from .errors import BounceBanApiError, CredentialsError
from .models import BounceBanCredentials

logger = logging.getLogger(__name__)

RETRY_STATUS = 408


def build_query(email: str, options: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Query string for /v1/verify/single: the address plus any set options."""
    query = {"email": email}
    for key, value in (options or {}).items():
        if value not in (None, ""):
            query[key] = value
    return query


def _headers(credentials: BounceBanCredentials, settings: Settings) -> Dict[str, str]:
    if not credentials.api_key:
        raise CredentialsError("BounceBan API key is required")
    headers = credentials.headers()
    headers["utc_source"] = settings.client_source
    return headers


def _parse_body(r: requests.Response) -> Any:
    try:
        return r.json()
    except ValueError:
        return r.text


def _error_message(status: int, body: Any) -> str:
    detail = None
    if isinstance(body, dict):
        detail = body.get("message") or body.get("error") or body.get("msg")
    elif isinstance(body, str) and body.strip():
        detail = body.strip()[:200]
    if detail:
        return f"HTTP {status}: {detail}"
    return f"HTTP {status}"


def request_with_retry(
    session: requests.Session,
    url: str,
    *,
    params: Optional[Dict[str, str]] = None,
    headers: Dict[str, str],
    max_retries: int,
    timeout: float,
    retry_delay: float = 0.0,
    verify: bool = True,
) -> Any:
    """GET ``url`` and return the decoded JSON body.

    Only HTTP 408 is retried, up to ``max_retries`` extra attempts. Anything else
    (another error status, a transport failure, a non-JSON body) raises
    BounceBanApiError straight away. ``retry_delay`` seconds are slept between
    408 retries.
    """
    attempts = max_retries + 1
    for attempt in range(1, attempts + 1):
        try:
            r = session.get(
                url,
                params=params,
                headers=headers,
                timeout=timeout,
                verify=verify,
            )
        except requests.RequestException as e:
            raise BounceBanApiError(f"Request failed: {e}", attempts=attempt) from e

        if r.status_code == RETRY_STATUS and attempt < attempts:
            logger.warning(
                "BounceBan returned 408 for %s (attempt %d/%d), retrying",
                url,
                attempt,
                attempts,
            )
            if retry_delay:
                time.sleep(retry_delay)
            continue

        body = _parse_body(r)
        if r.status_code >= 400:
            raise BounceBanApiError(
                _error_message(r.status_code, body),
                status_code=r.status_code,
                body=body,
                attempts=attempt,
            )
        if isinstance(body, str):
            raise BounceBanApiError(
                "Response was not valid JSON",
                status_code=r.status_code,
                body=body,
                attempts=attempt,
            )
        logger.debug("BounceBan %s answered %d after %d attempt(s)", url, r.status_code, attempt)
        return body

    # range() always reaches a return or raise above
    raise AssertionError("unreachable")


def verify_single(
    email: str,
    credentials: BounceBanCredentials,
    settings: Settings,
    options: Optional[Dict[str, str]] = None,
    session: Optional[requests.Session] = None,
) -> Any:
    """Verify one address with GET /v1/verify/single and return the JSON result.

    The certificate is not checked on this call.
    """
    headers = _headers(credentials, settings)
    query = build_query(email, options)
    own_session = session is None
    session = session or requests.Session()
    try:
        return request_with_retry(
            session,
            settings.verify_url,
            params=query,
            headers=headers,
            max_retries=settings.max_retries,
            timeout=settings.timeout,
            retry_delay=settings.retry_delay,
            verify=False,
        )
    finally:
        if own_session:
            session.close()


def check_credentials(
    credentials: BounceBanCredentials,
    settings: Settings,
    session: Optional[requests.Session] = None,
) -> Dict[str, Any]:
    """Check the API key against GET /v1/account and return the account info."""
    headers = _headers(credentials, settings)
    own_session = session is None
    session = session or requests.Session()
    try:
        return request_with_retry(
            session,
            settings.account_url,
            headers=headers,
            max_retries=0,
            timeout=settings.timeout,
            verify=True,
        )
    finally:
        if own_session:
            session.close()
