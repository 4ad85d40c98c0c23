"""Stable public API for building tooling on top of pumpkinctl.

This module is the supported integration surface for scripts and the CLI. Each
call runs to completion on its own event loop, so callers need no asyncio
knowledge. Async applications should use ``PumpkinService`` directly.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import Any, TypeVar

from pumpkinctl.core.config_loader import features_by_group, load_installation
from pumpkinctl.core.errors import (
    ConfigLoadError,
    ConfigValidationError,
    ControllerNotFoundError,
    FeatureNotFoundError,
    InputValidationError,
    PumpkinctlError,
    ResolutionError,
    TransportConnectError,
    TransportError,
    TransportResponseError,
    TransportTimeoutError,
)
from pumpkinctl.core.model import (
    Controller,
    ControllerResult,
    DispatchResult,
    Feature,
    Installation,
    PingResult,
    SegmentAddress,
    SegmentCommand,
)
from pumpkinctl.core.service import ClientFactory, PumpkinService

__all__ = [
    "PumpkinctlError",
    "ConfigLoadError",
    "ConfigValidationError",
    "ResolutionError",
    "FeatureNotFoundError",
    "ControllerNotFoundError",
    "InputValidationError",
    "TransportError",
    "TransportConnectError",
    "TransportResponseError",
    "TransportTimeoutError",
    "Controller",
    "ControllerResult",
    "DispatchResult",
    "Feature",
    "Installation",
    "PingResult",
    "SegmentAddress",
    "SegmentCommand",
    "Client",
]

_R = TypeVar("_R")


class Client:
    """Public client for driving an installation from synchronous code.

    A `Client` wraps config loading, feature resolution and controller dispatch.
    Pass ``installation`` to skip loading from disk, and ``client_factory`` to
    substitute controller clients (tests, dry runs).
    """

    def __init__(
        self,
        *,
        config_path: str | Path | None = None,
        installation: Installation | None = None,
        client_factory: ClientFactory | None = None,
        timeout_s: float = 5.0,
    ) -> None:
        self.installation = installation or load_installation(config_path)
        self._client_factory = client_factory
        self._timeout_s = timeout_s

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self.installation.warnings

    def list_features(self) -> list[Feature]:
        return list(self.installation.features.values())

    def list_controllers(self) -> list[Controller]:
        return list(self.installation.controllers.values())

    def features_by_group(self) -> dict[str, list[Feature]]:
        return features_by_group(self.installation)

    def set_feature(self, feature: str, command: SegmentCommand | Mapping[str, Any]) -> DispatchResult:
        return self._run(lambda service: service.set_feature(feature, command))

    def set_feature_color(self, feature: str, color: str) -> tuple[DispatchResult, tuple[int, int, int]]:
        return self._run(lambda service: service.set_feature_color(feature, color))

    def ping_all(self) -> dict[str, PingResult]:
        return self._run(lambda service: service.ping_all())

    def get_all_states(self) -> dict[str, ControllerResult]:
        return self._run(lambda service: service.get_all_states())

    def set_all_power(self, on: bool) -> dict[str, ControllerResult]:
        return self._run(lambda service: service.set_all_power(on))

    def set_all_brightness(self, level: int) -> dict[str, ControllerResult]:
        return self._run(lambda service: service.set_all_brightness(level))

    def load_preset_all(self, preset_id: int) -> dict[str, ControllerResult]:
        return self._run(lambda service: service.load_preset_all(preset_id))

    def _run(self, call: Callable[[PumpkinService], Awaitable[_R]]) -> _R:
        async def _main() -> _R:
            async with PumpkinService(
                self.installation,
                client_factory=self._client_factory,
                timeout_s=self._timeout_s,
            ) as service:
                return await call(service)

        return asyncio.run(_main())
