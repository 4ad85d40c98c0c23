from __future__ import annotations

from pathlib import Path

import pytest

from pumpkinctl.core.config_loader import (
    features_by_group,
    load_installation,
    with_host_override,
)
from pumpkinctl.core.errors import ConfigLoadError, ConfigValidationError


def _write_config(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("PUMPKINCTL_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))


def test_load_packaged_installation() -> None:
    installation = load_installation()
    assert installation.name == "Interactive Pumpkin"
    assert installation.controllers["pumpkin_12v"].segments == 8
    both = installation.features["bothEyes"]
    assert both.multi_segment is True
    assert [(t.controller, t.segment) for t in both.targets] == [("pumpkin_12v", 0), ("pumpkin_12v", 1)]
    assert installation.effects
    assert installation.palettes
    assert installation.warnings == ()


def test_user_config_in_xdg_home_wins_over_packaged(tmp_path: Path) -> None:
    _write_config(
        tmp_path / "cfg" / "pumpkinctl" / "installation.yaml",
        """
name: Garage Pumpkin
controllers:
  c1: {ip: 10.0.0.5, name: Garage, segments: 4}
features:
  leftEye: {name: Left Eye, controller: c1, segment: 2}
""",
    )

    installation = load_installation()
    assert installation.name == "Garage Pumpkin"
    assert installation.controllers["c1"].base_url == "http://10.0.0.5"


def test_env_var_config_path(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = _write_config(
        tmp_path / "pumpkin.json",
        '{"name": "Json Pumpkin", "controllers": {"c1": {"ip": "10.0.0.5", "name": "C1", "segments": 4}},'
        ' "features": {"nose": {"name": "Nose", "controller": "c1", "segment": 1}}}',
    )
    monkeypatch.setenv("PUMPKINCTL_CONFIG", str(path))

    installation = load_installation()
    assert installation.name == "Json Pumpkin"
    assert installation.features["nose"].segment == 1


def test_inline_catalogs_replace_packaged(tmp_path: Path) -> None:
    path = _write_config(
        tmp_path / "pumpkin.yaml",
        """
name: Tiny
controllers:
  c1: {ip: 10.0.0.5, segments: 1}
features: {}
effects:
  - {id: 0, name: Solid}
palettes:
  - {id: 9, name: Halloween, colors: ["#FF6600"], show: false}
""",
    )

    installation = load_installation(path)
    assert [e.name for e in installation.effects] == ["Solid"]
    assert installation.palettes[0].show is False
    assert installation.controllers["c1"].name == "c1"


def test_unknown_controller_and_segment_range_are_soft_warnings(tmp_path: Path) -> None:
    path = _write_config(
        tmp_path / "pumpkin.yaml",
        """
name: Warn
controllers:
  c1: {ip: 10.0.0.5, name: C1, segments: 2}
features:
  mouth: {name: Mouth, controller: c1, segment: 5}
  fill:
    name: Fill
    multiSegment: true
    targets:
      - {controller: c1, segment: 0}
      - {controller: ghost, segment: 0}
""",
    )

    installation = load_installation(path)
    assert "fill" in installation.features
    assert any("segment 5" in warning for warning in installation.warnings)
    assert any("unknown controller 'ghost'" in warning for warning in installation.warnings)


def test_missing_required_keys_rejected(tmp_path: Path) -> None:
    path = _write_config(
        tmp_path / "pumpkin.yaml",
        """
name: Missing
features: {}
""",
    )

    with pytest.raises(ConfigValidationError):
        load_installation(path)


@pytest.mark.parametrize("ip", ["10.0.0.5:99999", "10.0.0.5:", "pumpkin host", ""])
def test_malformed_controller_ip_rejected(tmp_path: Path, ip: str) -> None:
    path = _write_config(
        tmp_path / "pumpkin.yaml",
        f"""
name: Bad Host
controllers:
  c1:
    ip: "{ip}"
features: {{}}
""",
    )

    with pytest.raises(ConfigValidationError, match="controllers.c1.ip"):
        load_installation(path)


@pytest.mark.parametrize("ip", ["10.0.0.5:8080", "pumpkin.local", "http://localhost:8080/simulator/c1"])
def test_controller_ip_accepts_port_and_path(tmp_path: Path, ip: str) -> None:
    path = _write_config(
        tmp_path / "pumpkin.yaml",
        f"""
name: Good Host
controllers:
  c1:
    ip: "{ip}"
features: {{}}
""",
    )

    assert load_installation(path).controllers["c1"].host == ip


def test_single_feature_without_segment_rejected(tmp_path: Path) -> None:
    path = _write_config(
        tmp_path / "pumpkin.yaml",
        """
name: Bad
controllers:
  c1: {ip: 10.0.0.5}
features:
  nose: {name: Nose, controller: c1}
""",
    )

    with pytest.raises(ConfigValidationError):
        load_installation(path)


def test_multi_feature_without_targets_rejected(tmp_path: Path) -> None:
    path = _write_config(
        tmp_path / "pumpkin.yaml",
        """
name: Bad
controllers:
  c1: {ip: 10.0.0.5}
features:
  fill: {name: Fill, multiSegment: true, targets: []}
""",
    )

    with pytest.raises(ConfigValidationError):
        load_installation(path)


def test_duplicate_yaml_keys_rejected(tmp_path: Path) -> None:
    path = _write_config(
        tmp_path / "pumpkin.yaml",
        """
name: Dup
controllers:
  c1: {ip: 10.0.0.5}
features:
  nose: {name: Nose, controller: c1, segment: 0}
  nose: {name: Nose Again, controller: c1, segment: 1}
""",
    )

    with pytest.raises(ConfigValidationError):
        load_installation(path)


def test_missing_file_is_load_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError):
        load_installation(tmp_path / "nope.yaml")


def test_features_by_group_defaults_to_other(tmp_path: Path) -> None:
    path = _write_config(
        tmp_path / "pumpkin.yaml",
        """
name: Groups
controllers:
  c1: {ip: 10.0.0.5, segments: 4}
features:
  leftEye: {name: Left Eye, controller: c1, segment: 0, group: eyes}
  rightEye: {name: Right Eye, controller: c1, segment: 1, group: eyes}
  stem: {name: Stem, controller: c1, segment: 2}
""",
    )

    grouped = features_by_group(load_installation(path))
    assert [f.key for f in grouped["eyes"]] == ["leftEye", "rightEye"]
    assert [f.key for f in grouped["other"]] == ["stem"]


def test_host_override_rewrites_every_controller() -> None:
    installation = with_host_override(load_installation(), "localhost:8080/simulator/{key}")
    assert installation.controllers["pumpkin_5v"].base_url == "http://localhost:8080/simulator/pumpkin_5v"
    assert installation.features == load_installation().features
