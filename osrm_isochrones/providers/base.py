"""TableClient abstract base class.

Defines the contract every routing-server adapter must implement.  The
isochrone orchestrator only talks to this interface; it never knows
which concrete transport is behind it.

Contract:
    ``table(source, destinations, exclude=...)``: durations in seconds
    from one source to each destination, ``None`` where no route
    exists.  Any failure raises ``RemoteQueryFailed``; there is no
    per-destination retry and no partial result.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from osrm_isochrones.core.exceptions import IsochroneError, TransientError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from osrm_isochrones.models.routing import TableResult


class TableClient(abc.ABC):
    """Abstract base class for time-distance matrix clients.

    Implementations must be safe to call sequentially from a single
    thread; each isochrone call issues its requests one at a time.
    """

    #: Short name used in error messages and logs.
    name: str = "table"

    @abc.abstractmethod
    def table(
        self,
        source: tuple[float, float],
        destinations: Sequence[tuple[float, float]],
        *,
        exclude: str | None = None,
    ) -> TableResult:
        """Return travel durations from *source* to each destination.

        Args:
            source: ``(lon, lat)`` of the request source (WGS 84).
            destinations: ``(lon, lat)`` of each destination (WGS 84).
            exclude: Optional server ``exclude`` option, passed through.

        Returns:
            A ``TableResult`` with one duration per destination, in
            destination order.

        Raises:
            RemoteQueryFailed: On transport, HTTP or payload errors.
        """


# ---------------------------------------------------------------------------
# Provider exceptions
# ---------------------------------------------------------------------------


class ProviderError(IsochroneError):
    """Base exception for routing-server adapter errors.

    Attributes:
        provider: Name of the adapter that raised the error.
        message: Human-readable error description.
        retryable: Whether the caller could retry the operation.
    """

    default_stage = "provider"
    default_code = "PROVIDER_ERROR"

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        retryable: bool = False,
    ) -> None:
        self.provider = provider
        super().__init__(
            message,
            retryable=retryable,
            code=self.default_code,
            stage=self.default_stage,
        )

    def __str__(self) -> str:
        return f"[{self.provider}] {self.message}"


class RemoteQueryFailed(ProviderError):
    """A request to the routing server failed.

    Attributes:
        status_code: HTTP status, or ``None`` for transport failures.
        chunk_index: Index of the isochrone chunk being queried, when
            raised during an isochrone computation.
    """

    default_code = "REMOTE_QUERY_FAILED"

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        status_code: int | None = None,
        chunk_index: int | None = None,
        retryable: bool = False,
    ) -> None:
        self.status_code = status_code
        self.chunk_index = chunk_index
        super().__init__(provider, message, retryable=retryable)

    def for_chunk(self, chunk_index: int) -> RemoteQueryFailed:
        """Return a copy tagged with the chunk that failed."""
        return type(self)(
            self.provider,
            f"chunk {chunk_index}: {self.message}",
            status_code=self.status_code,
            chunk_index=chunk_index,
            retryable=self.retryable,
        )


class RemoteServiceUnavailable(RemoteQueryFailed, TransientError):
    """The routing server could not be reached or is throttling/overloaded.

    Raised for transport failures and HTTP 429/502/503/504.  Retryable by
    default; the engine itself still never retries.
    """

    default_code = "REMOTE_SERVICE_UNAVAILABLE"

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        status_code: int | None = None,
        chunk_index: int | None = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(
            provider,
            message,
            status_code=status_code,
            chunk_index=chunk_index,
            retryable=retryable,
        )
