"""Core data models used across loader, registry, service, and edges."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pumpkinctl.core.errors import InputValidationError

_BYTE_FIELDS = ("sx", "ix")
_ID_FIELDS = ("fx", "pal")
COMMAND_FIELDS = ("fx", "pal", "sx", "ix", "col")


@dataclass(frozen=True)
class Controller:
    key: str
    name: str
    host: str
    segments: int

    @property
    def base_url(self) -> str:
        host = self.host.rstrip("/")
        if host.startswith(("http://", "https://")):
            return host
        return f"http://{host}"


@dataclass(frozen=True)
class SegmentAddress:
    controller: str
    segment: int


@dataclass(frozen=True)
class Feature:
    key: str
    name: str
    targets: tuple[SegmentAddress, ...]
    multi_segment: bool = False
    group: str | None = None
    color: str | None = None

    @property
    def controller(self) -> str | None:
        """Controller key for single-target features."""
        if self.multi_segment or len(self.targets) != 1:
            return None
        return self.targets[0].controller

    @property
    def segment(self) -> int | None:
        if self.multi_segment or len(self.targets) != 1:
            return None
        return self.targets[0].segment

    def to_dict(self) -> dict[str, Any]:
        doc: dict[str, Any] = {"name": self.name}
        if self.multi_segment:
            doc["multiSegment"] = True
            doc["targets"] = [
                {"controller": t.controller, "segment": t.segment} for t in self.targets
            ]
        else:
            doc["controller"] = self.targets[0].controller
            doc["segment"] = self.targets[0].segment
        if self.group is not None:
            doc["group"] = self.group
        if self.color is not None:
            doc["color"] = self.color
        return doc


def _check_int(value: Any, *, name: str, low: int, high: int | None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InputValidationError(f"{name} must be an integer")
    if value < low or (high is not None and value > high):
        bound = f"between {low} and {high}" if high is not None else f">= {low}"
        raise InputValidationError(f"{name} must be {bound}")
    return value


def _check_colors(value: Any) -> tuple[tuple[int, int, int], ...]:
    if not isinstance(value, (list, tuple)):
        raise InputValidationError("col must be a list of [r, g, b] triples")
    colors: list[tuple[int, int, int]] = []
    for entry in value:
        if not isinstance(entry, (list, tuple)) or len(entry) != 3:
            raise InputValidationError("col entries must be [r, g, b] triples")
        r, g, b = (_check_int(channel, name="col channel", low=0, high=255) for channel in entry)
        colors.append((r, g, b))
    return tuple(colors)


@dataclass(frozen=True)
class SegmentCommand:
    """Visual state for a segment. ``None`` means leave the field unchanged."""

    fx: int | None = None
    pal: int | None = None
    sx: int | None = None
    ix: int | None = None
    col: tuple[tuple[int, int, int], ...] | None = None

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> SegmentCommand:
        values: dict[str, Any] = {}
        for name in _ID_FIELDS:
            if data.get(name) is not None:
                values[name] = _check_int(data[name], name=name, low=0, high=None)
        for name in _BYTE_FIELDS:
            if data.get(name) is not None:
                values[name] = _check_int(data[name], name=name, low=0, high=255)
        if data.get("col") is not None:
            values["col"] = _check_colors(data["col"])
        return cls(**values)

    def is_empty(self) -> bool:
        return not self.to_wire()

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {}
        for name in COMMAND_FIELDS:
            value = getattr(self, name)
            if value is None:
                continue
            if name == "col":
                value = [list(rgb) for rgb in value]
            wire[name] = value
        return wire


@dataclass(frozen=True)
class SegmentTarget:
    controller: str
    segment: int
    command: SegmentCommand

    def to_wire(self) -> dict[str, Any]:
        return {"id": self.segment, **self.command.to_wire()}


@dataclass(frozen=True)
class ControllerResult:
    success: bool
    data: Any = None
    error: str | None = None
    controller: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error, "controller": self.controller}


@dataclass(frozen=True)
class PingResult:
    online: bool
    version: str | None = None
    name: str | None = None
    error: str | None = None
    controller: str | None = None

    def to_dict(self) -> dict[str, Any]:
        doc: dict[str, Any] = {"success": self.online, "online": self.online}
        if self.online:
            doc["version"] = self.version
            doc["name"] = self.name
        else:
            doc["error"] = self.error
            doc["controller"] = self.controller
        return doc


@dataclass(frozen=True)
class DispatchResult:
    success: bool
    feature: str
    results: dict[str, ControllerResult]
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "success": self.success,
            "feature": self.feature,
            "results": {key: result.to_dict() for key, result in self.results.items()},
        }
        if self.error is not None:
            doc["error"] = self.error
        return doc


@dataclass(frozen=True)
class EffectInfo:
    id: int
    name: str
    show: bool = True


@dataclass(frozen=True)
class PaletteInfo:
    id: int
    name: str
    colors: tuple[str, ...] = ()
    show: bool = True


@dataclass(frozen=True)
class Installation:
    name: str
    controllers: dict[str, Controller]
    features: dict[str, Feature]
    effects: tuple[EffectInfo, ...] = ()
    palettes: tuple[PaletteInfo, ...] = ()
    warnings: tuple[str, ...] = field(default=())
