"""
Paper details gateway — metadata extraction for an arXiv PDF.

All outbound calls to the paper-details endpoint go through this class.

Request:
    POST <PAPER_DETAILS_URL>
    {"task": "get_paper_details", "payload": {"pdf_url": "<url>"}}

The endpoint sits behind a function URL and answers in one of three shapes:
  1. the inner payload directly:   {"ok": true, "paper": {...}}
  2. an envelope:                  {"statusCode": 200, "body": "{\"ok\": true, ...}"}
  3. an envelope whose ``body`` is itself a JSON-encoded string of (2)'s body

``decode_response`` accepts all three. ``ok=false``, non-2xx, or anything
undecodable raises ``FetchError``.

Retry: max 2 retries, backoff 1 s → 4 s, on network errors and 5xx only.

Testability: pass a fake ``session`` (anything with ``.post``) and a no-op
``sleep`` to PaperDetailsGateway() in tests.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable

import requests
from flask import current_app

from anning.core.exceptions import FetchError

logger = logging.getLogger(__name__)

# ── Retry constants ────────────────────────────────────────────────────────
_RETRY_MAX = 2
_RETRY_BACKOFF_SECONDS = [1, 4]    # sleep[0] after 1st fail, sleep[1] after 2nd

# ── Default request timeout ────────────────────────────────────────────────
_DEFAULT_TIMEOUT = 30

_TASK_NAME = "get_paper_details"


class PaperMetadata:
    """Metadata returned for one paper.

    Every field except ``pdf_url`` may be None. ``authors`` is the raw
    comma-separated author string the endpoint produces.
    """

    FIELDS = (
        "pdf_url",
        "title",
        "abstract",
        "authors",
        "motivation",
        "experiment_setup",
        "methodology",
        "result",
        "conclusion",
        "survey",
        "page_count",
    )

    def __init__(self, pdf_url: str, **fields: Any) -> None:
        self.pdf_url = pdf_url
        for name in self.FIELDS[1:]:
            setattr(self, name, fields.get(name))

    @classmethod
    def from_payload(cls, paper: Any) -> "PaperMetadata":
        if not isinstance(paper, dict):
            raise FetchError("Response 'paper' is not an object")
        pdf_url = paper.get("pdf_url")
        if not isinstance(pdf_url, str):
            raise FetchError("Missing key 'paper.pdf_url'")

        fields = {}
        for name in cls.FIELDS[1:]:
            value = paper.get(name)
            if name == "page_count":
                if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                    raise FetchError(f"Type mismatch at 'paper.{name}'")
            elif value is not None and not isinstance(value, str):
                raise FetchError(f"Type mismatch at 'paper.{name}'")
            fields[name] = value
        return cls(pdf_url, **fields)

    def to_dict(self) -> dict:
        return {name: getattr(self, name) for name in self.FIELDS}

    def __repr__(self) -> str:
        return f"<PaperMetadata {self.pdf_url!r} title={self.title!r}>"


def _from_body(body: Any) -> PaperMetadata | None:
    """Return metadata if ``body`` is the inner payload, None if it is not that shape."""
    if not isinstance(body, dict) or "ok" not in body or "paper" not in body:
        return None
    if body.get("ok") is not True:
        raise FetchError("Server responded ok=false")
    return PaperMetadata.from_payload(body["paper"])


def decode_response(text: str) -> PaperMetadata:
    """Decode any of the three response shapes into ``PaperMetadata``."""
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise FetchError(f"Unexpected response format. Raw: {text[:500]}") from exc

    direct = _from_body(data)
    if direct is not None:
        return direct

    body = data.get("body") if isinstance(data, dict) else None
    if not isinstance(body, str) or not body.strip():
        raise FetchError(f"Response missing 'body'. Raw: {text[:500]}")

    try:
        inner = json.loads(body.strip())
    except ValueError as exc:
        raise FetchError(f"Could not decode body JSON. Body prefix: {body[:300]}") from exc

    # double-encoded: the body decodes to another JSON string
    if isinstance(inner, str):
        try:
            inner = json.loads(inner)
        except ValueError as exc:
            raise FetchError(f"Could not decode body JSON. Body prefix: {body[:300]}") from exc

    parsed = _from_body(inner)
    if parsed is None:
        raise FetchError(f"Could not decode body JSON. Body prefix: {body[:300]}")
    return parsed


class PaperDetailsGateway:
    """HTTP client for the paper-details endpoint.

    Args:
        endpoint: Full URL of the endpoint. None means not configured;
            every fetch then raises ``FetchError``.
        session: ``requests.Session`` (or a fake with ``.post``).
        timeout: Per-request timeout in seconds.
        sleep: Backoff sleep function.
    """

    def __init__(
        self,
        endpoint: str | None = None,
        session: Any = None,
        timeout: float = _DEFAULT_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.endpoint = endpoint
        self._session = session or requests.Session()
        self.timeout = timeout
        self._sleep = sleep

    def fetch_metadata(self, pdf_url: str) -> PaperMetadata:
        """Fetch metadata for ``pdf_url``.

        Raises:
            FetchError: endpoint missing, network failure after retries,
                non-2xx status, ``ok=false`` or an undecodable body.
        """
        if not self.endpoint:
            raise FetchError("Paper details endpoint is not configured (PAPER_DETAILS_URL)")

        body = {"task": _TASK_NAME, "payload": {"pdf_url": pdf_url}}
        last_error = None
        last_status = None

        for attempt in range(_RETRY_MAX + 1):
            try:
                resp = self._session.post(
                    self.endpoint,
                    json=body,
                    headers={"Content-Type": "application/json"},
                    timeout=self.timeout,
                )
                last_status = resp.status_code

                if 200 <= resp.status_code < 300:
                    metadata = decode_response(resp.text)
                    logger.info(
                        "Fetched paper details for %s (title=%r)", pdf_url, metadata.title,
                    )
                    return metadata

                last_error = f"HTTP {resp.status_code}. Raw: {resp.text[:500]}"
                if resp.status_code < 500:
                    # client errors are not retried
                    raise FetchError(last_error, status_code=resp.status_code)
                logger.warning(
                    "Paper details request failed attempt=%d/%d status=%d url=%s",
                    attempt + 1, _RETRY_MAX + 1, resp.status_code, pdf_url,
                )

            except requests.Timeout:
                last_error = f"Request timed out after {self.timeout}s"
                logger.warning(
                    "Paper details request timed out attempt=%d/%d url=%s",
                    attempt + 1, _RETRY_MAX + 1, pdf_url,
                )

            except requests.RequestException as exc:
                last_error = str(exc)[:500]
                logger.warning(
                    "Paper details network error attempt=%d/%d url=%s error=%s",
                    attempt + 1, _RETRY_MAX + 1, pdf_url, last_error,
                )

            if attempt < _RETRY_MAX:
                sleep_s = _RETRY_BACKOFF_SECONDS[min(attempt, len(_RETRY_BACKOFF_SECONDS) - 1)]
                logger.info("Retrying paper details request in %ss (attempt %d)", sleep_s, attempt + 2)
                self._sleep(sleep_s)

        raise FetchError(last_error or "Paper details request failed", status_code=last_status)


def get_gateway() -> PaperDetailsGateway:
    """Return the app's gateway, building it from config on first use.

    Tests replace it by setting ``app.extensions["paper_details_gateway"]``.
    """
    gateway = current_app.extensions.get("paper_details_gateway")
    if gateway is None:
        gateway = PaperDetailsGateway(
            endpoint=current_app.config.get("PAPER_DETAILS_URL"),
            timeout=current_app.config.get("PAPER_DETAILS_TIMEOUT", _DEFAULT_TIMEOUT),
        )
        current_app.extensions["paper_details_gateway"] = gateway
    return gateway
