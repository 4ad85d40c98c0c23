"""FastAPI application exposing the dispatch engine over REST."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, StrictBool

from pumpkinctl.core.errors import InputValidationError, ResolutionError
from pumpkinctl.core.model import Installation, SegmentCommand
from pumpkinctl.core.service import PumpkinService

LOGGER = logging.getLogger(__name__)


class ColorRequest(BaseModel):
    color: str | None = None


class PowerRequest(BaseModel):
    on: StrictBool


class BrightnessRequest(BaseModel):
    brightness: float = Field(ge=0, le=255, strict=True)


class PresetRequest(BaseModel):
    preset: int = Field(ge=0, strict=True)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _results(results: dict[str, Any]) -> dict[str, Any]:
    return {key: result.to_dict() for key, result in results.items()}


def _config_document(installation: Installation) -> dict[str, Any]:
    return {
        "name": installation.name,
        "features": {key: feature.to_dict() for key, feature in installation.features.items()},
        "effects": {"effects": [asdict(effect) for effect in installation.effects]},
        "palettes": {
            "palettes": [
                {**asdict(palette), "colors": list(palette.colors)} for palette in installation.palettes
            ]
        },
        "controllers": {
            key: {"ip": c.host, "name": c.name, "segments": c.segments}
            for key, c in installation.controllers.items()
        },
    }


async def log_connectivity(service: PumpkinService) -> None:
    """Ping every controller and log one online/offline line each."""
    results = await service.ping_all()
    for key, result in results.items():
        controller = service.installation.controllers[key]
        if result.online:
            LOGGER.info("%s (%s) online, version %s", controller.name, controller.host, result.version)
        else:
            LOGGER.warning("%s (%s) offline: %s", controller.name, controller.host, result.error)


def build_router() -> APIRouter:
    router = APIRouter(prefix="/api")

    @router.get("/config")
    async def get_config(request: Request) -> dict[str, Any]:
        return _config_document(request.app.state.service.installation)

    @router.post("/feature/{feature_name}")
    async def set_feature(
        feature_name: str,
        request: Request,
        body: dict[str, Any] | None = Body(default=None),
    ) -> Any:
        service: PumpkinService = request.app.state.service
        feature = service.registry.get(feature_name)
        command = SegmentCommand.from_mapping(body or {})

        result = await service.set_feature(feature_name, command)
        if not result.success:
            return JSONResponse(status_code=500, content=result.to_dict())

        response: dict[str, Any] = {"success": True, "feature": feature_name}
        if feature.controller is not None:
            response["controller"] = feature.controller
            response["segment"] = feature.segment
        response["applied"] = command.to_wire()
        return response

    @router.post("/feature/{feature_name}/color")
    async def set_feature_color(feature_name: str, payload: ColorRequest, request: Request) -> Any:
        if not payload.color:
            return _error(400, "Color is required")
        service: PumpkinService = request.app.state.service
        result, rgb = await service.set_feature_color(feature_name, payload.color)
        if not result.success:
            return JSONResponse(status_code=500, content=result.to_dict())
        return {"success": True, "feature": feature_name, "color": payload.color, "rgb": list(rgb)}

    @router.get("/state")
    async def get_state(request: Request) -> dict[str, Any]:
        return _results(await request.app.state.service.get_all_states())

    @router.post("/power")
    async def set_power(payload: PowerRequest, request: Request) -> dict[str, Any]:
        results = await request.app.state.service.set_all_power(payload.on)
        return {"success": True, "results": _results(results)}

    @router.post("/brightness")
    async def set_brightness(payload: BrightnessRequest, request: Request) -> dict[str, Any]:
        level = int(payload.brightness)
        results = await request.app.state.service.set_all_brightness(level)
        return {"success": True, "brightness": level, "results": _results(results)}

    @router.post("/preset")
    async def load_preset(payload: PresetRequest, request: Request) -> dict[str, Any]:
        results = await request.app.state.service.load_preset_all(payload.preset)
        return {"success": True, "preset": payload.preset, "results": _results(results)}

    @router.get("/ping")
    async def ping(request: Request) -> dict[str, Any]:
        return _results(await request.app.state.service.ping_all())

    return router


def create_app(
    installation: Installation,
    *,
    service: PumpkinService | None = None,
    ping_on_startup: bool = True,
) -> FastAPI:
    """Create the REST application for one installation.

    When ``service`` is given the caller keeps ownership of it; otherwise the app
    builds one on startup and closes it on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = service is None
        app.state.service = service or PumpkinService(installation)
        LOGGER.info(
            "Loaded %s: %d features, %d controllers",
            installation.name,
            len(installation.features),
            len(installation.controllers),
        )
        try:
            if ping_on_startup:
                await log_connectivity(app.state.service)
            yield
        finally:
            if owned:
                await app.state.service.aclose()

    app = FastAPI(title="Pumpkin Control API", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(ResolutionError)
    async def _resolution_error(_: Request, exc: ResolutionError) -> JSONResponse:
        return _error(404, str(exc))

    @app.exception_handler(InputValidationError)
    async def _input_error(_: Request, exc: InputValidationError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _request_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        messages = []
        for err in exc.errors():
            field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
            messages.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
        return _error(400, "; ".join(messages) or "Invalid request body")

    app.include_router(build_router())
    return app
