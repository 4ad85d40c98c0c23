from __future__ import annotations

from pumpkinctl.api import Client, DispatchResult
from pumpkinctl.core.model import Controller, ControllerResult, PingResult


class FakeClient:
    def __init__(self, controller: Controller) -> None:
        self.controller = controller

    async def set_segment(self, segment_id, props):
        return ControllerResult(success=True, data={"seg": segment_id})

    async def set_segments(self, segments):
        return ControllerResult(success=True, data={"count": len(segments)})

    async def set_brightness(self, level):
        return ControllerResult(success=True, data={"bri": max(0, min(255, level))})

    async def ping(self):
        return PingResult(online=True, version="0.14.0", name=self.controller.name)


def test_public_client_loads_packaged_installation(monkeypatch) -> None:
    monkeypatch.delenv("PUMPKINCTL_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", "/nonexistent")
    client = Client(client_factory=FakeClient)
    assert any(f.key == "bothEyes" for f in client.list_features())
    assert "eyes" in client.features_by_group()
    assert client.load_warnings == ()


def test_public_client_set_feature(monkeypatch) -> None:
    monkeypatch.delenv("PUMPKINCTL_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", "/nonexistent")
    client = Client(client_factory=FakeClient)

    result = client.set_feature("fill", {"fx": 9})
    assert isinstance(result, DispatchResult)
    assert result.success is True
    assert result.results["pumpkin_12v"].data == {"count": 2}
    assert result.results["pumpkin_5v"].data == {"count": 2}


def test_public_client_ping_and_brightness(monkeypatch) -> None:
    monkeypatch.delenv("PUMPKINCTL_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", "/nonexistent")
    client = Client(client_factory=FakeClient)

    pings = client.ping_all()
    assert all(p.online for p in pings.values())
    assert client.set_all_brightness(300)["pumpkin_5v"].data == {"bri": 255}
