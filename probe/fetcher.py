# probe/fetcher.py
import json
import logging
import socket
import time
from typing import Any, Callable, Dict, Optional

import httpx

from utils.errors import CommunicationError, FetchError, ProtocolError

logger = logging.getLogger(__name__)

RETRY_DELAY_SECONDS = 5.0
MAX_CONNECTIONS = 128
MAX_CONNECTIONS_PER_HOST = 32

# Failures worth a wait-and-retry: the request never got a proper answer
COMMUNICATION_ERRORS = (
    httpx.NetworkError,        # connect refused, socket read/write failures
    httpx.ConnectTimeout,
    httpx.RemoteProtocolError,  # server closed before responding
    ConnectionError,
    socket.timeout,
)


def build_http_client(timeout: float = 30.0) -> httpx.Client:
    """HTTP client for talking to cluster nodes. Status endpoints answer directly,
    so redirects are not followed."""
    limits = httpx.Limits(
        max_connections=MAX_CONNECTIONS,
        max_keepalive_connections=MAX_CONNECTIONS_PER_HOST,
    )
    return httpx.Client(limits=limits, follow_redirects=False, timeout=timeout)


def is_communication_error(exc: BaseException) -> bool:
    """True if exc, or anything in its cause chain, is a network-level failure."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, COMMUNICATION_ERRORS):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return False


def _get_json(client: httpx.Client, url: httpx.URL) -> Dict[str, Any]:
    response = client.get(url)
    if not response.is_success:
        raise ProtocolError(
            f"Unexpected HTTP status {response.status_code} {response.reason_phrase} from {url}",
            status_code=response.status_code,
        )
    if not response.content:
        raise ProtocolError(
            f"Empty response body from {url} (HTTP {response.status_code})",
            status_code=response.status_code,
        )
    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ProtocolError(
            f"Response from {url} is not valid JSON: {e}", status_code=response.status_code
        ) from e
    if not isinstance(body, dict):
        raise ProtocolError(
            f"Expected JSON object in response but received {body!r}",
            status_code=response.status_code,
        )
    return body


def fetch_json(
    url: str,
    max_attempts: int = 2,
    client: Optional[httpx.Client] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    """GETs url (with wt=json set) and returns the parsed JSON object.

    Communication failures are retried, RETRY_DELAY_SECONDS apart, until
    max_attempts requests have been made. Anything else fails on the spot.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    if client is None:
        with build_http_client() as own_client:
            return fetch_json(url, max_attempts, client=own_client, sleep=sleep)

    request_url = httpx.URL(url).copy_set_param("wt", "json")
    attempt = 0
    while True:
        attempt += 1
        try:
            return _get_json(client, request_url)
        except httpx.HTTPError as e:
            if not is_communication_error(e):
                raise FetchError(f"Request to {url} failed: {e}") from e
            if attempt >= max_attempts:
                raise CommunicationError(
                    f"Request to {url} failed after {attempt} attempt(s): {e}"
                ) from e
            logger.warning(
                "[Probe] Request to %s failed due to: %s, sleeping for %d seconds before re-trying the request ...",
                url, e, RETRY_DELAY_SECONDS,
            )
            sleep(RETRY_DELAY_SECONDS)
