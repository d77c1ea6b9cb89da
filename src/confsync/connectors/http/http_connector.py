"""
HTTP connector for conditional document fetches.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional, Sequence

import requests

from ...core.connector import Connector, ConnectivityProbe, always_online
from ...core.exceptions import (
    HttpStatusError,
    OfflineError,
    PayloadParseError,
    TransientFetchError,
)
from ...core.models import FetchKind, FetchOutcome


logger = logging.getLogger(__name__)

Decoder = Callable[[Any], Any]

DEFAULT_BACKOFF = (1.0, 2.0, 4.0)


def _identity(data: Any) -> Any:
    return data


class HttpConnector(Connector):
    """
    HTTP connector performing conditional GETs.

    Supports:
    - If-None-Match validators (304 short-circuits, no retry)
    - Retries with exponential backoff for connection errors and timeouts
    - Immediate failure for error statuses and malformed bodies
    - Offline detection before any request is made

    The same connector class serves every document type; ``decoder`` turns
    the parsed JSON into the payload type.
    """

    def __init__(
        self,
        name: str = "http",
        decoder: Optional[Decoder] = None,
        timeout: float = 10,
        max_attempts: int = 3,
        backoff_delays: Sequence[float] = DEFAULT_BACKOFF,
        user_agent: Optional[str] = None,
        extra_headers: Optional[Dict[str, str]] = None,
        fallback_validator_header: Optional[str] = "X-ETag",
        connectivity: Optional[ConnectivityProbe] = None,
        enabled: bool = True,
    ):
        """
        Initialize the HTTP connector.

        Args:
            name: Connector name
            decoder: Callable turning decoded JSON into the payload type
            timeout: Per-attempt request timeout in seconds
            max_attempts: Total attempts for transient failures
            backoff_delays: Seconds to wait before each retry
            user_agent: Custom User-Agent header
            extra_headers: Headers sent with every request
            fallback_validator_header: Header read when ETag is absent
            connectivity: Probe returning False when the device is offline
            enabled: When False every fetch fails without touching the network
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.name = name
        self.decoder = decoder or _identity
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff_delays = tuple(backoff_delays) or DEFAULT_BACKOFF
        self.user_agent = user_agent or "ConfSync/1.0"
        self.extra_headers = dict(extra_headers or {})
        self.fallback_validator_header = fallback_validator_header
        self.connectivity = connectivity or always_online
        self.enabled = enabled
        self.session = requests.Session()

    def fetch(self, url: str, prior_validator: Optional[str] = None) -> FetchOutcome:
        """
        Fetch a document via conditional GET.

        Args:
            url: Document URL
            prior_validator: ETag from the last accepted fetch

        Returns:
            FetchOutcome with the result
        """
        if not self.enabled:
            logger.info(f"{self.name}: remote fetch disabled")
            return FetchOutcome.failed("Remote fetch disabled", kind=FetchKind.DISABLED)

        try:
            self._ensure_online()
        except OfflineError as e:
            logger.info(f"{self.name}: {e}, skipping fetch")
            return FetchOutcome.failed(str(e), kind=FetchKind.OFFLINE)

        headers = {"User-Agent": self.user_agent, "Accept": "application/json"}
        headers.update(self.extra_headers)
        if prior_validator:
            headers["If-None-Match"] = prior_validator

        last_error = None
        for attempt in range(self.max_attempts):
            attempts = attempt + 1
            logger.debug(f"{self.name}: fetching {url} (attempt {attempts}/{self.max_attempts})")
            try:
                response = self._send(url, headers)
            except TransientFetchError as e:
                last_error = str(e)
                logger.warning(
                    f"{self.name}: request failed (attempt {attempts}/{self.max_attempts}): {e}"
                )
                if attempt < self.max_attempts - 1:
                    time.sleep(self._backoff(attempt))
                continue
            except HttpStatusError as e:
                return FetchOutcome.failed(
                    str(e), kind=FetchKind.HTTP_STATUS, attempts=attempts
                )

            if response.status_code == 304:
                logger.info(f"{self.name}: not modified (304)")
                return FetchOutcome.unchanged(prior_validator, attempts=attempts)

            if not 200 <= response.status_code < 300:
                logger.warning(f"{self.name}: HTTP {response.status_code} from {url}")
                return FetchOutcome.failed(
                    f"HTTP {response.status_code}",
                    kind=FetchKind.HTTP_STATUS,
                    status_code=response.status_code,
                    attempts=attempts,
                )

            try:
                payload = self._decode(response)
            except PayloadParseError as e:
                logger.error(f"{self.name}: malformed response from {url}: {e}")
                return FetchOutcome.failed(
                    str(e),
                    kind=FetchKind.PARSE,
                    status_code=response.status_code,
                    attempts=attempts,
                )

            validator = self._extract_validator(response)
            if validator:
                logger.debug(f"{self.name}: received validator {validator}")
            return FetchOutcome.fetched(
                payload,
                validator=validator,
                status_code=response.status_code,
                attempts=attempts,
            )

        return FetchOutcome.failed(
            f"Request failed after {self.max_attempts} attempts: {last_error}",
            kind=FetchKind.TRANSIENT,
            attempts=self.max_attempts,
        )

    def _ensure_online(self) -> None:
        if not self.connectivity():
            raise OfflineError("no network connection")

    def _send(self, url: str, headers: Dict[str, str]) -> requests.Response:
        """Issue one GET, mapping requests errors onto the sync taxonomy."""
        start_time = time.time()
        try:
            response = self.session.get(url, headers=headers, timeout=self.timeout)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise TransientFetchError(str(e)) from e
        except requests.exceptions.RequestException as e:
            raise HttpStatusError(f"Request rejected: {e}") from e
        duration_ms = int((time.time() - start_time) * 1000)
        logger.debug(f"{self.name}: HTTP {response.status_code} in {duration_ms}ms")
        return response

    def _decode(self, response: requests.Response) -> Any:
        try:
            data = response.json()
        except ValueError as e:
            raise PayloadParseError(f"Invalid JSON: {e}") from e
        try:
            return self.decoder(data)
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            raise PayloadParseError(f"Unexpected document shape: {e}") from e

    def _extract_validator(self, response: requests.Response) -> Optional[str]:
        validator = response.headers.get("ETag")
        if not validator and self.fallback_validator_header:
            validator = response.headers.get(self.fallback_validator_header)
        return validator or None

    def _backoff(self, attempt: int) -> float:
        return self.backoff_delays[min(attempt, len(self.backoff_delays) - 1)]

    def get_name(self) -> str:
        """Return the connector name."""
        return self.name

    def close(self) -> None:
        """Close the session."""
        if self.session:
            self.session.close()
