"""JSON-over-HTTP transport for WLED-style controllers using httpx."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from pumpkinctl.core.errors import (
    TransportConnectError,
    TransportError,
    TransportResponseError,
    TransportTimeoutError,
)
from pumpkinctl.core.model import Controller, ControllerResult, PingResult

DEFAULT_TIMEOUT_S = 5.0
STATE_PATH = "/json/state"
INFO_PATH = "/json/info"
LOGGER = logging.getLogger(__name__)


def clamp_brightness(level: int) -> int:
    return max(0, min(255, int(level)))


class JsonApiClient:
    """Client for one controller's ``/json`` API.

    Every method returns a result object instead of raising. The request is logged
    before it is sent so intent shows up even when the controller is unreachable.
    ``http`` may be shared between clients; the caller owns its lifetime.
    """

    def __init__(
        self,
        controller: Controller,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.controller = controller
        self.timeout_s = timeout_s
        self._http = http

    @property
    def name(self) -> str:
        return self.controller.name

    @property
    def base_url(self) -> str:
        return self.controller.base_url

    async def set_segment(self, segment_id: int, props: dict[str, Any]) -> ControllerResult:
        return await self._call("POST", STATE_PATH, {"seg": [{"id": segment_id, **props}]})

    async def set_segments(self, segments: Sequence[dict[str, Any]]) -> ControllerResult:
        return await self._call("POST", STATE_PATH, {"seg": list(segments)})

    async def get_state(self) -> ControllerResult:
        return await self._call("GET", STATE_PATH)

    async def get_info(self) -> ControllerResult:
        return await self._call("GET", INFO_PATH)

    async def set_power(self, on: bool) -> ControllerResult:
        return await self._call("POST", STATE_PATH, {"on": bool(on)})

    async def set_brightness(self, level: int) -> ControllerResult:
        return await self._call("POST", STATE_PATH, {"bri": clamp_brightness(level)})

    async def load_preset(self, preset_id: int) -> ControllerResult:
        return await self._call("POST", STATE_PATH, {"ps": int(preset_id)})

    async def ping(self) -> PingResult:
        result = await self.get_info()
        if not result.success:
            return PingResult(
                online=False,
                error=result.error or "unknown error",
                controller=self.name,
            )
        info = result.data if isinstance(result.data, dict) else {}
        return PingResult(online=True, version=info.get("ver"), name=info.get("name"))

    async def _call(self, method: str, path: str, payload: dict[str, Any] | None = None) -> ControllerResult:
        url = f"{self.base_url}{path}"
        if payload is None:
            LOGGER.info("%s %s (%s)", method, url, self.name)
        else:
            LOGGER.info("%s %s (%s) payload=%s", method, url, self.name, payload)

        try:
            data = await self._send(method, url, payload)
        except TransportError as exc:
            LOGGER.warning("%s %s failed on %s: %s", method, url, self.name, exc)
            return ControllerResult(success=False, error=str(exc), controller=self.name)
        return ControllerResult(success=True, data=data)

    async def _send(self, method: str, url: str, payload: dict[str, Any] | None) -> Any:
        if self._http is None:
            async with httpx.AsyncClient() as http:
                return await self._request(http, method, url, payload)
        return await self._request(self._http, method, url, payload)

    async def _request(
        self,
        http: httpx.AsyncClient,
        method: str,
        url: str,
        payload: dict[str, Any] | None,
    ) -> Any:
        try:
            response = await http.request(method, url, json=payload, timeout=self.timeout_s)
        except httpx.TimeoutException as exc:
            raise TransportTimeoutError(
                f"timeout of {self.timeout_s:g}s exceeded contacting {url}"
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL, OSError, ValueError, OverflowError) as exc:
            raise TransportConnectError(f"{type(exc).__name__}: {str(exc) or url}") from exc

        if response.is_error:
            raise TransportResponseError(
                f"Request failed with status code {response.status_code}"
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise TransportResponseError(f"Invalid JSON in response from {url}") from exc
