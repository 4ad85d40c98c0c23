"""Service layer: feature dispatch and whole-installation operations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

import httpx

from pumpkinctl.core.color import hex_to_rgb
from pumpkinctl.core.errors import ControllerNotFoundError
from pumpkinctl.core.model import (
    Controller,
    ControllerResult,
    DispatchResult,
    Installation,
    PingResult,
    SegmentCommand,
    SegmentTarget,
)
from pumpkinctl.core.registry import FeatureRegistry
from pumpkinctl.transports.base import ControllerClient
from pumpkinctl.transports.json_api import DEFAULT_TIMEOUT_S, JsonApiClient

ClientFactory = Callable[[Controller], ControllerClient]
SOLID_EFFECT = 0
LOGGER = logging.getLogger(__name__)

_R = TypeVar("_R")


class PumpkinService:
    """Dispatch engine and connectivity monitor for one installation.

    Clients are built once per controller and never mutated, so any number of
    dispatches may run concurrently. Controller batches within one dispatch are
    issued with ``asyncio.gather``; results are reported in partition order.
    """

    def __init__(
        self,
        installation: Installation,
        *,
        client_factory: ClientFactory | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self.installation = installation
        self.registry = FeatureRegistry(installation.features)
        self._http: httpx.AsyncClient | None = None
        if client_factory is None:
            self._http = httpx.AsyncClient()
            client_factory = _json_api_factory(self._http, timeout_s)
        self.clients: dict[str, ControllerClient] = {
            key: client_factory(controller) for key, controller in installation.controllers.items()
        }

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self.installation.warnings

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()

    async def __aenter__(self) -> PumpkinService:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def get_client(self, controller_key: str, feature: str | None = None) -> ControllerClient:
        client = self.clients.get(controller_key)
        if client is None:
            raise ControllerNotFoundError(controller_key, feature)
        return client

    def plan(self, feature_key: str, command: SegmentCommand) -> dict[str, list[SegmentTarget]]:
        """Resolve a feature and group its targets by controller, keeping order."""
        addresses = self.registry.resolve(feature_key)
        batches: dict[str, list[SegmentTarget]] = {}
        for address in addresses:
            self.get_client(address.controller, feature_key)
            batches.setdefault(address.controller, []).append(
                SegmentTarget(controller=address.controller, segment=address.segment, command=command)
            )
        return batches

    async def set_feature(
        self,
        feature_key: str,
        command: SegmentCommand | Mapping[str, Any],
    ) -> DispatchResult:
        if not isinstance(command, SegmentCommand):
            command = SegmentCommand.from_mapping(dict(command))

        batches = self.plan(feature_key, command)
        feature = self.registry.get(feature_key)
        LOGGER.info(
            "Dispatching %s to %d controller(s): %s",
            feature_key,
            len(batches),
            command.to_wire(),
        )

        if not feature.multi_segment and len(feature.targets) == 1:
            (target,) = next(iter(batches.values()))
            calls = {
                target.controller: self.clients[target.controller].set_segment(
                    target.segment, command.to_wire()
                )
            }
        else:
            calls = {
                key: self.clients[key].set_segments([t.to_wire() for t in targets])
                for key, targets in batches.items()
            }

        results = await _gather_by_key(calls)
        return _aggregate(feature_key, results)

    async def set_feature_color(self, feature_key: str, color: str) -> tuple[DispatchResult, tuple[int, int, int]]:
        rgb = hex_to_rgb(color)
        result = await self.set_feature(feature_key, SegmentCommand(fx=SOLID_EFFECT, col=(rgb,)))
        return result, rgb

    async def ping_all(self) -> dict[str, PingResult]:
        return await self._each(lambda client: client.ping())

    async def get_all_states(self) -> dict[str, ControllerResult]:
        return await self._each(lambda client: client.get_state())

    async def set_all_power(self, on: bool) -> dict[str, ControllerResult]:
        return await self._each(lambda client: client.set_power(on))

    async def set_all_brightness(self, level: int) -> dict[str, ControllerResult]:
        return await self._each(lambda client: client.set_brightness(level))

    async def load_preset_all(self, preset_id: int) -> dict[str, ControllerResult]:
        return await self._each(lambda client: client.load_preset(preset_id))

    async def _each(self, call: Callable[[ControllerClient], Awaitable[_R]]) -> dict[str, _R]:
        return await _gather_by_key({key: call(client) for key, client in self.clients.items()})


async def _gather_by_key(calls: Mapping[str, Awaitable[_R]]) -> dict[str, _R]:
    keys = list(calls)
    values = await asyncio.gather(*calls.values())
    return dict(zip(keys, values))


def _aggregate(feature_key: str, results: dict[str, ControllerResult]) -> DispatchResult:
    failures = [(key, result) for key, result in results.items() if not result.success]
    if not failures:
        return DispatchResult(success=True, feature=feature_key, results=results)

    error = "; ".join(f"{key}: {result.error}" for key, result in failures)
    LOGGER.warning("Dispatch of %s failed on %d controller(s): %s", feature_key, len(failures), error)
    return DispatchResult(success=False, feature=feature_key, results=results, error=error)


def _json_api_factory(http: httpx.AsyncClient, timeout_s: float) -> ClientFactory:
    def build(controller: Controller) -> ControllerClient:
        return JsonApiClient(controller, timeout_s=timeout_s, http=http)

    return build
