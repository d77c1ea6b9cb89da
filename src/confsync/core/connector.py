"""
Connector interface for conditional fetches of remote documents.
"""

import logging
import socket
from abc import ABC, abstractmethod
from typing import Callable, Optional
from urllib.parse import urlparse

from .models import FetchOutcome


logger = logging.getLogger(__name__)

ConnectivityProbe = Callable[[], bool]


class Connector(ABC):
    """
    Abstract base class for all connectors.

    A connector performs one conditional GET and classifies the result as
    unchanged, fetched or failed. It never raises for network or payload
    problems; those are reported through the returned ``FetchOutcome``.
    """

    @abstractmethod
    def fetch(self, url: str, prior_validator: Optional[str] = None) -> FetchOutcome:
        """
        Fetch a document, sending ``prior_validator`` as a precondition.

        Args:
            url: The document URL
            prior_validator: Validator (ETag) from the last accepted fetch

        Returns:
            FetchOutcome describing the result
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Return the connector name/identifier."""
        pass

    def close(self) -> None:
        """Close any open resources. Optional."""
        pass


def always_online() -> bool:
    return True


def socket_probe(url: str, timeout: float = 2.0) -> ConnectivityProbe:
    """
    Build a probe that checks whether the host behind ``url`` is reachable.

    The probe opens and immediately closes a TCP connection.
    """
    parsed = urlparse(url)
    host = parsed.hostname or "localhost"
    port = parsed.port or (443 if parsed.scheme == "https" else 80)

    def probe() -> bool:
        try:
            with socket.create_connection((host, port), timeout=timeout):
                return True
        except OSError as e:
            logger.debug(f"Connectivity probe to {host}:{port} failed: {e}")
            return False

    return probe
