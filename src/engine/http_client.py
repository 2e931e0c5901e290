"""HTTP and GraphQL helpers with the rate-limit retry policy used by every stream."""

from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Mapping, Optional

import requests

from .config import (
    DEFAULT_RETRY_AFTER_SEC,
    MAX_RATE_LIMIT_RETRIES,
    REQUEST_TIMEOUT,
    USER_AGENT,
)
from .errors import (
    FetchError,
    MalformedResponse,
    RemoteRejected,
    RetryBudgetExhausted,
    TransientRateLimited,
    TransportFailure,
)

RATE_LIMIT_STATUSES = {403, 429}

# YouTube answers 403 for refusals that no amount of waiting will fix.
PERMANENT_403_REASONS = {"commentsDisabled", "forbidden"}


def build_session(user_agent: str = USER_AGENT,
                  headers: Optional[Mapping[str, str]] = None) -> requests.Session:
    """Create the shared session; headers are fixed here and only read afterwards."""
    session = requests.Session()
    session.headers.update({"User-Agent": user_agent, "Accept": "application/json"})
    if headers:
        session.headers.update(headers)
    return session


def _error_body(resp: requests.Response) -> Dict[str, Any]:
    try:
        body = resp.json()
    except Exception:
        return {"text": (resp.text or "")[:300]}
    return body if isinstance(body, dict) else {"text": str(body)[:300]}


def error_message(resp: requests.Response) -> Optional[str]:
    """Pull a one-line message out of a GitHub or Google style error body."""
    body = _error_body(resp)
    err = body.get("error")
    if isinstance(err, dict):
        return err.get("message")
    return body.get("message") or err or body.get("text")


def error_reasons(resp: requests.Response) -> set:
    err = _error_body(resp).get("error")
    if not isinstance(err, dict):
        return set()
    return {e.get("reason") for e in (err.get("errors") or []) if isinstance(e, dict)}


def log_http_error(resp: requests.Response, url: str) -> None:
    """Print a short, human-readable message when an API returns an error."""
    print(f"[error] HTTP {resp.status_code} for {url}\n  -> {error_message(resp)}")


def parse_retry_after(headers: Optional[Mapping[str, str]],
                      default: float = DEFAULT_RETRY_AFTER_SEC) -> float:
    """Seconds to wait from a Retry-After header (delta or HTTP date), else `default`."""
    raw = (headers or {}).get("Retry-After")
    if raw is None:
        return default
    raw = str(raw).strip()
    if raw.isdigit():
        return float(raw)
    try:
        when = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return default
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def is_rate_limited(resp: requests.Response) -> bool:
    if resp.status_code not in RATE_LIMIT_STATUSES:
        return False
    if resp.status_code == 403 and error_reasons(resp) & PERMANENT_403_REASONS:
        return False
    return True


def sleep_for_rate_limit(wait_sec: float, cancel_event: Optional[threading.Event] = None) -> None:
    """Block only the calling worker; wakes early when the run is cancelled."""
    if cancel_event is not None:
        cancel_event.wait(wait_sec)
    else:
        time.sleep(wait_sec)


class RateLimitRetryPolicy:
    """Send requests for one logical stream, retrying rate limits within a budget.

    The retry counter lives on the instance and is never reset, so each
    paginated stream gets its own policy and its own budget of
    `max_retries`, independent of concurrently running streams.
    """

    def __init__(
        self,
        session: requests.Session,
        *,
        label: str = "",
        max_retries: int = MAX_RATE_LIMIT_RETRIES,
        default_wait: float = DEFAULT_RETRY_AFTER_SEC,
        timeout: float = REQUEST_TIMEOUT,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.session = session
        self.label = label
        self.max_retries = max_retries
        self.default_wait = default_wait
        self.timeout = timeout
        self.cancel_event = cancel_event
        self.retries = 0

    def _check(self, resp: requests.Response, url: str) -> Any:
        if 200 <= resp.status_code < 300:
            try:
                return resp.json()
            except ValueError as exc:
                print(f"[error] unparsable body from {url} -> {exc}")
                raise MalformedResponse(f"invalid JSON from {url}") from exc

        if is_rate_limited(resp):
            raise TransientRateLimited(resp.status_code, parse_retry_after(resp.headers, self.default_wait))

        log_http_error(resp, url)
        raise RemoteRejected(resp.status_code, error_message(resp))

    def send(self, method: str, url: str, **kwargs) -> Any:
        """Perform one exchange and return the decoded JSON body."""
        while True:
            try:
                resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
            except requests.RequestException as exc:
                print(f"[error] {self.label or url}: {exc}")
                raise TransportFailure(str(exc)) from exc

            try:
                return self._check(resp, url)
            except TransientRateLimited as limited:
                if self.retries >= self.max_retries:
                    print(f"[rate-limit] {self.label or url}: max retry attempts reached")
                    raise RetryBudgetExhausted(self.retries) from limited
                self.retries += 1
                print(
                    f"[rate-limit] {self.label or url}: HTTP {limited.status}; "
                    f"retry {self.retries}/{self.max_retries} in {limited.wait_sec:g}s"
                )
                sleep_for_rate_limit(limited.wait_sec, self.cancel_event)
                if self.cancel_event is not None and self.cancel_event.is_set():
                    raise FetchError("cancelled during rate-limit backoff") from limited

    def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.send("GET", url, params=params)

    def post(self, url: str, payload: Dict[str, Any]) -> Any:
        return self.send("POST", url, json=payload)


def run_graphql_query(policy: RateLimitRetryPolicy,
                      url: str,
                      query: str,
                      variables: Dict[str, Any]) -> Dict[str, Any]:
    """Execute a GraphQL query through `policy`, returning the `data` member."""
    body = policy.post(url, {"query": query, "variables": variables})
    if not isinstance(body, dict):
        raise MalformedResponse(f"GraphQL response is not an object: {type(body).__name__}")
    if body.get("errors"):
        messages = ", ".join(
            str(err.get("message")) for err in body["errors"] if isinstance(err, dict)
        )
        raise RemoteRejected(200, f"GraphQL error: {messages or body['errors']}")
    return body.get("data") or {}


__all__ = [
    "RATE_LIMIT_STATUSES",
    "PERMANENT_403_REASONS",
    "build_session",
    "error_message",
    "error_reasons",
    "log_http_error",
    "parse_retry_after",
    "is_rate_limited",
    "sleep_for_rate_limit",
    "RateLimitRetryPolicy",
    "run_graphql_query",
]
