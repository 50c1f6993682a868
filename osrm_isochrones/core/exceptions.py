"""Unified exception taxonomy.

Every engine exception inherits from ``IsochroneError`` and carries
structured context fields so that callers can classify failures
without string matching.

Taxonomy categories
-------------------
- ``ValidationError``: bad caller input or configuration, never retryable.
- ``TransientError``: temporary failures (network, throttle).
- ``PermanentError``: unrecoverable domain failures, not retryable.
- ``ContractError``: broken invariant between engine stages.

The engine itself never retries; ``retryable`` is information for the
caller.  Every exception exposes ``to_error_dict()`` for a stable
structured payload suitable for logging.
"""

from __future__ import annotations


class IsochroneError(Exception):
    """Base exception for all engine errors.

    Attributes:
        message: Human-readable error description.
        stage: Engine stage where the error occurred
            (e.g. ``"build_grid"``, ``"fill_grid"``).
        code: Machine-readable error code (e.g. ``"UNSUPPORTED_PROFILE"``).
        retryable: Whether a retry by the caller could succeed.
        correlation_id: Request correlation identifier.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(IsochroneError):
    """Input or configuration validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(IsochroneError):
    """Temporary failure that may succeed if the caller tries again."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(IsochroneError):
    """Unrecoverable domain failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(IsochroneError):
    """Invariant broken between engine stages. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Engine errors
# ---------------------------------------------------------------------------


class UnsupportedProfile(ValidationError):
    """No speed estimate exists for the requested routing profile."""

    default_stage = "build_grid"
    default_code = "UNSUPPORTED_PROFILE"

    def __init__(self, profile: str, known: tuple[str, ...] = ()) -> None:
        self.profile = profile
        msg = f"Unsupported routing profile: {profile!r}"
        if known:
            msg += f". Known profiles: {', '.join(known)}"
        super().__init__(msg)


class InvalidBreaks(ValidationError):
    """Time breaks are empty, too few, negative or not finite."""

    default_stage = "validate_breaks"
    default_code = "INVALID_BREAKS"


class UnreachableOrigin(PermanentError):
    """Every measured cell lies beyond the largest requested break."""

    default_stage = "fill_grid"
    default_code = "UNREACHABLE_ORIGIN"


class DegenerateSmoothingKernel(ValidationError):
    """The Gaussian smoothing kernel collapsed to a trivial size."""

    default_stage = "smooth_surface"
    default_code = "DEGENERATE_KERNEL"


class ReassemblyMismatch(ContractError):
    """Chunk responses do not line up with the sampling grid."""

    default_stage = "fill_grid"
    default_code = "REASSEMBLY_MISMATCH"
