"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
from pathlib import Path

import typer

from pumpkinctl.api import Client
from pumpkinctl.core.config_loader import with_host_override
from pumpkinctl.core.errors import PumpkinctlError
from pumpkinctl.core.model import ControllerResult, SegmentCommand

app = typer.Typer(help="Pumpkin LED installation control over the controllers' JSON API")


class _State:
    config: Path | None = None


_state = _State()


@app.callback()
def main(
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Installation config (YAML or JSON)", envvar="PUMPKINCTL_CONFIG"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every controller request"),
) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _state.config = config


def _build_client() -> Client:
    client = Client(config_path=_state.config)
    for warning in client.load_warnings:
        typer.echo(f"Warning: {warning}", err=True)
    return client


def _echo_results(results: dict[str, ControllerResult]) -> bool:
    ok = True
    for key, result in results.items():
        if result.success:
            typer.echo(f"{key}: ok")
        else:
            ok = False
            typer.echo(f"{key}: failed ({result.error})")
    return ok


@app.command("features")
def list_features() -> None:
    """List features grouped by UI group, with their segment targets."""
    try:
        client = _build_client()
        for group, features in sorted(client.features_by_group().items()):
            typer.echo(f"{group}:")
            for feature in features:
                targets = ", ".join(f"{t.controller}/{t.segment}" for t in feature.targets)
                typer.echo(f"  {feature.key} ({feature.name}) -> {targets}")
    except PumpkinctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("controllers")
def list_controllers() -> None:
    """List configured controllers."""
    try:
        client = _build_client()
        for controller in client.list_controllers():
            typer.echo(
                f"{controller.key}: {controller.name} @ {controller.host} "
                f"({controller.segments} segments)"
            )
    except PumpkinctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("ping")
def ping() -> None:
    """Check connectivity to every controller."""
    try:
        client = _build_client()
        results = client.ping_all()
        for key, result in results.items():
            if result.online:
                typer.echo(f"{key}: online (version {result.version}, name {result.name})")
            else:
                typer.echo(f"{key}: offline ({result.error})")
    except PumpkinctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    if not all(result.online for result in results.values()):
        raise typer.Exit(code=1)


@app.command("state")
def state() -> None:
    """Print the state each controller reports."""
    try:
        client = _build_client()
        results = client.get_all_states()
        for key, result in results.items():
            if result.success:
                typer.echo(f"{key}: {result.data}")
            else:
                typer.echo(f"{key}: failed ({result.error})")
    except PumpkinctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("set")
def set_feature(
    feature: str,
    fx: int | None = typer.Option(None, "--fx", help="Effect id"),
    pal: int | None = typer.Option(None, "--pal", help="Palette id"),
    sx: int | None = typer.Option(None, "--sx", help="Speed 0-255"),
    ix: int | None = typer.Option(None, "--ix", help="Intensity 0-255"),
    color: str | None = typer.Option(None, "--color", help="Solid colour as #RRGGBB"),
) -> None:
    """Apply an effect/palette (or a solid colour) to FEATURE."""
    if color is not None and any(value is not None for value in (fx, pal, sx, ix)):
        typer.echo(
            "Error: --color sets a solid effect and cannot be combined with --fx, --pal, --sx or --ix",
            err=True,
        )
        raise typer.Exit(code=1)
    try:
        client = _build_client()
        if color is not None:
            result, rgb = client.set_feature_color(feature, color)
            applied = f"color={color} rgb={list(rgb)}"
        else:
            command = SegmentCommand.from_mapping({"fx": fx, "pal": pal, "sx": sx, "ix": ix})
            if command.is_empty():
                typer.echo("Error: nothing to set; pass --fx, --pal, --sx, --ix or --color", err=True)
                raise typer.Exit(code=1)
            result = client.set_feature(feature, command)
            applied = " ".join(f"{k}={v}" for k, v in command.to_wire().items())
    except PumpkinctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    ok = _echo_results(result.results)
    if not ok:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Set {feature}: {applied}")


@app.command("power")
def power(state: str = typer.Argument(..., help="on or off")) -> None:
    """Turn every controller on or off."""
    lowered = state.strip().lower()
    if lowered not in {"on", "off"}:
        typer.echo("Error: power state must be 'on' or 'off'", err=True)
        raise typer.Exit(code=1)
    try:
        results = _build_client().set_all_power(lowered == "on")
    except PumpkinctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    if not _echo_results(results):
        raise typer.Exit(code=1)


@app.command("brightness")
def brightness(level: int = typer.Argument(..., help="0-255, clamped")) -> None:
    """Set global brightness on every controller."""
    try:
        results = _build_client().set_all_brightness(level)
    except PumpkinctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    if not _echo_results(results):
        raise typer.Exit(code=1)


@app.command("preset")
def preset(preset_id: int = typer.Argument(..., min=0, help="Preset id stored on the controllers")) -> None:
    """Load a stored preset on every controller."""
    try:
        results = _build_client().load_preset_all(preset_id)
    except PumpkinctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    if not _echo_results(results):
        raise typer.Exit(code=1)


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", "--host", envvar="PUMPKINCTL_HOST"),
    port: int = typer.Option(3000, "--port", envvar="PUMPKINCTL_PORT"),
    controller_host_template: str | None = typer.Option(
        None,
        "--controller-host-template",
        help="Rewrite controller hosts, e.g. 'localhost:8080/simulator/{key}'",
    ),
    no_ping: bool = typer.Option(False, "--no-ping", help="Skip the startup connectivity check"),
) -> None:
    """Run the REST API server."""
    import uvicorn

    from pumpkinctl.web import create_app

    try:
        client = _build_client()
    except PumpkinctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    installation = client.installation
    if controller_host_template:
        installation = with_host_override(installation, controller_host_template)

    typer.echo(f"Serving {installation.name} on http://{host}:{port}")
    uvicorn.run(create_app(installation, ping_on_startup=not no_ping), host=host, port=port)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
