"""
Static connector for offline demos and tests.

Serves in-memory documents keyed by URL with real conditional-GET
semantics: each document has an ETag, and a request carrying a matching
validator gets an unchanged outcome. Scripted outcomes can be queued to
simulate failures without any network.
"""

import hashlib
import json
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional

from ..core.connector import Connector
from ..core.models import FetchKind, FetchOutcome

logger = logging.getLogger(__name__)


@dataclass
class RecordedRequest:
    url: str
    prior_validator: Optional[str]


def compute_etag(document: Any) -> str:
    """Stable quoted ETag for a JSON document."""
    body = json.dumps(document, sort_keys=True, separators=(",", ":"))
    return '"' + hashlib.sha256(body.encode("utf-8")).hexdigest()[:16] + '"'


class StaticConnector(Connector):
    """
    Deterministic connector backed by a dictionary of documents.

    Features:
    - ETag validators derived from document content (or set explicitly)
    - Queued outcomes that take priority over served documents
    - Offline switch
    - Request history for assertions
    """

    def __init__(
        self,
        name: str = "static",
        decoder: Optional[Callable[[Any], Any]] = None,
        documents: Optional[Dict[str, Any]] = None,
    ):
        self.name = name
        self.decoder = decoder or (lambda data: data)
        self._documents: Dict[str, Any] = {}
        self._etags: Dict[str, str] = {}
        self._scripted: Deque[FetchOutcome] = deque()
        self.offline = False
        self.request_history: List[RecordedRequest] = []

        for url, document in (documents or {}).items():
            self.serve(url, document)

    def serve(self, url: str, document: Any, etag: Optional[str] = None) -> str:
        """
        Publish ``document`` at ``url``.

        Returns:
            The ETag clients will receive
        """
        self._documents[url] = document
        self._etags[url] = etag or compute_etag(document)
        return self._etags[url]

    def withdraw(self, url: str) -> None:
        self._documents.pop(url, None)
        self._etags.pop(url, None)

    def enqueue(self, outcome: FetchOutcome) -> None:
        """Return ``outcome`` for the next fetch instead of a served document."""
        self._scripted.append(outcome)

    def fetch(self, url: str, prior_validator: Optional[str] = None) -> FetchOutcome:
        self.request_history.append(RecordedRequest(url, prior_validator))

        if self.offline:
            return FetchOutcome.failed("offline", kind=FetchKind.OFFLINE)

        if self._scripted:
            return self._scripted.popleft()

        if url not in self._documents:
            return FetchOutcome.failed(
                "HTTP 404", kind=FetchKind.HTTP_STATUS, status_code=404, attempts=1
            )

        etag = self._etags[url]
        if prior_validator and prior_validator == etag:
            return FetchOutcome.unchanged(prior_validator)

        try:
            payload = self.decoder(self._documents[url])
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            return FetchOutcome.failed(
                f"Unexpected document shape: {e}", kind=FetchKind.PARSE, status_code=200, attempts=1
            )
        return FetchOutcome.fetched(payload, validator=etag)

    def reset(self) -> None:
        """Clear request history and any queued outcomes."""
        self.request_history.clear()
        self._scripted.clear()

    def get_name(self) -> str:
        return self.name
