"""Installation config loading and validation for YAML/JSON pumpkin configs."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import replace
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from pumpkinctl.core.errors import ConfigLoadError, ConfigValidationError
from pumpkinctl.core.model import (
    Controller,
    EffectInfo,
    Feature,
    Installation,
    PaletteInfo,
    SegmentAddress,
)

CONFIG_ENV_VAR = "PUMPKINCTL_CONFIG"
CONFIG_FILENAME = "installation.yaml"
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


def _load_schema_validator() -> Any:
    schema_text = resources.files("pumpkinctl.schemas").joinpath("installation.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _read_yaml(path: Path | Traversable) -> Any:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        return yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc


def _packaged(name: str) -> Traversable:
    return resources.files("pumpkinctl.data").joinpath(name)


def default_config_path() -> Path | Traversable:
    """Resolve the config file: env var, then XDG config home, then packaged default."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    user_path = xdg_config / "pumpkinctl" / CONFIG_FILENAME
    if user_path.is_file():
        return user_path
    return _packaged(CONFIG_FILENAME)


def _build_feature(key: str, spec: dict[str, Any], source: Path | Traversable) -> Feature:
    multi = bool(spec.get("multiSegment", False))
    if multi:
        raw_targets = spec.get("targets") or []
        if not raw_targets:
            raise ConfigValidationError(
                f"Multi-segment feature '{key}' in {source} must define a non-empty targets list"
            )
        targets = tuple(SegmentAddress(controller=t["controller"], segment=int(t["segment"])) for t in raw_targets)
    else:
        if "controller" not in spec or "segment" not in spec:
            raise ConfigValidationError(
                f"Feature '{key}' in {source} must define controller and segment (or multiSegment targets)"
            )
        targets = (SegmentAddress(controller=spec["controller"], segment=int(spec["segment"])),)

    return Feature(
        key=key,
        name=spec["name"],
        targets=targets,
        multi_segment=multi,
        group=spec.get("group"),
        color=spec.get("color"),
    )


def _reference_warnings(
    controllers: dict[str, Controller],
    features: dict[str, Feature],
) -> list[str]:
    warnings: list[str] = []
    for feature in features.values():
        for target in feature.targets:
            controller = controllers.get(target.controller)
            if controller is None:
                warnings.append(
                    f"Feature '{feature.key}' references unknown controller '{target.controller}'"
                )
            elif target.segment >= controller.segments:
                warnings.append(
                    f"Feature '{feature.key}' targets segment {target.segment} but controller "
                    f"'{controller.key}' declares {controller.segments} segments"
                )
    return warnings


def build_installation(doc: Any, source: Path | Traversable) -> Installation:
    if not isinstance(doc, dict):
        raise ConfigValidationError(f"Config file {source} must contain a mapping at root")

    doc = dict(doc)
    if "effects" not in doc:
        doc["effects"] = _read_yaml(_packaged("effects.yaml"))
    if "palettes" not in doc:
        doc["palettes"] = _read_yaml(_packaged("palettes.yaml"))

    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    controllers = {
        key: Controller(
            key=key,
            name=spec.get("name", key),
            host=spec["ip"],
            segments=int(spec.get("segments", 1)),
        )
        for key, spec in doc["controllers"].items()
    }
    features = {key: _build_feature(key, spec, source) for key, spec in doc["features"].items()}

    warnings = _reference_warnings(controllers, features)
    for warning in warnings:
        LOGGER.warning(warning)

    return Installation(
        name=doc["name"],
        controllers=controllers,
        features=features,
        effects=tuple(
            EffectInfo(id=e["id"], name=e["name"], show=e.get("show", True)) for e in doc["effects"]
        ),
        palettes=tuple(
            PaletteInfo(
                id=p["id"],
                name=p["name"],
                colors=tuple(p.get("colors", ())),
                show=p.get("show", True),
            )
            for p in doc["palettes"]
        ),
        warnings=tuple(warnings),
    )


def load_installation(path: str | Path | None = None) -> Installation:
    source = Path(path) if path is not None else default_config_path()
    LOGGER.info("Loading installation config from %s", source)
    return build_installation(_read_yaml(source), source)


def features_by_group(installation: Installation) -> dict[str, list[Feature]]:
    grouped: dict[str, list[Feature]] = {}
    for feature in installation.features.values():
        grouped.setdefault(feature.group or "other", []).append(feature)
    return grouped


def with_host_override(installation: Installation, template: str) -> Installation:
    """Point every controller at ``template`` formatted with ``key`` (and ``host``).

    ``"localhost:8080/simulator/{key}"`` routes every controller through a local
    simulator instead of the physical hardware.
    """
    controllers = {
        key: replace(controller, host=template.format(key=key, host=controller.host))
        for key, controller in installation.controllers.items()
    }
    return replace(installation, controllers=controllers)
