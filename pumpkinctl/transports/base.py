"""Transport interfaces."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from pumpkinctl.core.model import ControllerResult, PingResult


class ControllerClient(Protocol):
    async def set_segment(self, segment_id: int, props: dict[str, Any]) -> ControllerResult:
        """Apply ``props`` to one segment."""

    async def set_segments(self, segments: Sequence[dict[str, Any]]) -> ControllerResult:
        """Apply an ordered list of ``{id, ...}`` entries in one request."""

    async def get_state(self) -> ControllerResult: ...

    async def get_info(self) -> ControllerResult: ...

    async def set_power(self, on: bool) -> ControllerResult: ...

    async def set_brightness(self, level: int) -> ControllerResult: ...

    async def load_preset(self, preset_id: int) -> ControllerResult: ...

    async def ping(self) -> PingResult:
        """Liveness probe; never raises."""
