"""Engine configuration loaded from explicit values or the environment.

There is no process-wide option state: an ``IsochroneConfig`` is built
once by the caller and threaded through every call.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any value is out
    of its valid range, so bad configuration is caught before the first
    request leaves the process.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from osrm_isochrones.core.constants import (
    DEFAULT_PROFILE,
    DEFAULT_RES,
    DEFAULT_SERVER,
    MIN_RES,
    PROFILE_SPEEDS_M_PER_MIN,
)
from osrm_isochrones.core.exceptions import ValidationError

_TRUTHY = frozenset({"1", "true", "yes", "on"})


class ConfigValidationError(ValidationError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class IsochroneConfig:
    """Immutable routing and isochrone configuration.

    Attributes:
        server: Base URL of the routing server, with a trailing slash.
        profile: Routing profile (``car``, ``driving``, ``bike``, ``foot``, ``walk``).
        res: Grid points along one side of the sampling grid.
        smooth: Apply a Gaussian moving window to the measured surface.
        k: Sigma of the Gaussian window in metres (``None`` = half a cell).
        exclude: Opaque ``exclude`` option passed to the server.
        timeout_s: HTTP timeout per request in seconds.
    """

    server: str = DEFAULT_SERVER
    profile: str = DEFAULT_PROFILE
    res: int = DEFAULT_RES
    smooth: bool = False
    k: float | None = None
    exclude: str | None = None
    timeout_s: float = 30.0

    @classmethod
    def from_env(cls) -> IsochroneConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``ISOCHRONE_RES=abc``).
        """
        k_raw = os.getenv("ISOCHRONE_K", "")
        config = cls(
            server=os.getenv("OSRM_SERVER", DEFAULT_SERVER),
            profile=os.getenv("OSRM_PROFILE", DEFAULT_PROFILE),
            res=int(os.getenv("ISOCHRONE_RES", str(DEFAULT_RES))),
            smooth=os.getenv("ISOCHRONE_SMOOTH", "false").strip().lower() in _TRUTHY,
            k=float(k_raw) if k_raw else None,
            exclude=os.getenv("OSRM_EXCLUDE") or None,
            timeout_s=float(os.getenv("OSRM_TIMEOUT_S", "30")),
        )
        validate_config(config)
        return config


def validate_config(config: IsochroneConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if not config.server.startswith(("http://", "https://")):
        raise ConfigValidationError("OSRM_SERVER", config.server, "must be an http(s) URL")

    if not config.server.endswith("/"):
        raise ConfigValidationError("OSRM_SERVER", config.server, "must end with '/'")

    if config.profile not in PROFILE_SPEEDS_M_PER_MIN:
        raise ConfigValidationError(
            "OSRM_PROFILE",
            config.profile,
            f"must be one of {', '.join(sorted(PROFILE_SPEEDS_M_PER_MIN))}",
        )

    if config.res < MIN_RES:
        raise ConfigValidationError("ISOCHRONE_RES", config.res, f"must be >= {MIN_RES}")

    if config.k is not None and config.k <= 0:
        raise ConfigValidationError("ISOCHRONE_K", config.k, "must be > 0 (metres)")

    if config.timeout_s <= 0:
        raise ConfigValidationError("OSRM_TIMEOUT_S", config.timeout_s, "must be > 0 (seconds)")
