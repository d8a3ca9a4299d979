# clarity_server/app.py
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Callable, Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import __version__
from .config import Settings
from .errors import ValidationError
from .llm import (
    ModelGateway,
    generate_photo_routine,
    generate_quick_routine,
    generate_routine_from_text,
    generate_text_routine,
)
from .schemas import (
    HealthOut,
    PhotoRoutineIn,
    PhotoRoutineOut,
    QuickRoutineIn,
    QuickRoutineOut,
    SimpleRoutineOut,
    TextRoutineIn,
    TextRoutineOut,
    resolve_plan_type,
)

logger = logging.getLogger(__name__)

TEXT_FAILED = "Failed to generate routine"
PHOTO_FAILED = "Failed to generate routine from photo"
QUICK_FAILED = "Failed to generate quick routine"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


def _generate(route: str, message: str, fn: Callable[[], BaseModel]) -> JSONResponse:
    """
    Run one pipeline and render its response; any failure becomes a 500
    with the route's message.

    The response body is built inside the guard so output the model
    controls can't escape as a plain-text error. The client never sees
    which stage failed, the log does.
    """
    try:
        out = fn()
        return JSONResponse(
            content=out.model_dump(mode="json", by_alias=True, exclude_none=True)
        )
    except Exception as exc:
        logger.exception("Error in %s (%s): %s", route, type(exc).__name__, exc)
        return _error(500, message)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway(request: Request) -> ModelGateway:
    return request.app.state.gateway


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[ModelGateway] = None,
) -> FastAPI:
    """
    Build the Clarity app.

    Tests pass a fake gateway; otherwise one is built from settings on
    startup, after the settings have been validated.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.gateway is None:
            settings.require_api_key()
            app.state.gateway = ModelGateway.from_settings(settings)
        yield

    app = FastAPI(title="Clarity Backend", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.gateway = gateway

    # the mobile app calls from anywhere; tighten for a web client
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def _validation_error(_request: Request, exc: ValidationError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _bad_body(_request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("Rejected request body: %s", exc.errors())
        return _error(400, "Invalid request body")

    # -----------------------------------------------------------------------
    # Health
    # -----------------------------------------------------------------------

    @app.get("/health", response_model=HealthOut)
    def health() -> HealthOut:
        return HealthOut(status="ok")

    # -----------------------------------------------------------------------
    # Routine from text (onboarding)
    # -----------------------------------------------------------------------

    @app.post(
        "/api/routines/from-text",
        response_model=TextRoutineOut,
    )
    def routine_from_text(
        payload: Optional[TextRoutineIn] = None,
        gateway: ModelGateway = Depends(get_gateway),
        settings: Settings = Depends(get_settings),
    ):
        payload = payload or TextRoutineIn()
        if _blank(payload.struggle) or _blank(payload.goal):
            raise ValidationError("struggle and goal are required")
        plan = resolve_plan_type(payload.plan_type)

        return _generate(
            "/api/routines/from-text",
            TEXT_FAILED,
            lambda: TextRoutineOut(
                **generate_text_routine(
                    gateway, settings, plan, payload.struggle, payload.goal
                )
            ),
        )

    @app.post("/api/routines/from-text/simple", response_model=SimpleRoutineOut)
    def routine_from_text_simple(
        payload: Optional[TextRoutineIn] = None,
        gateway: ModelGateway = Depends(get_gateway),
        settings: Settings = Depends(get_settings),
    ):
        payload = payload or TextRoutineIn()
        if _blank(payload.struggle) or _blank(payload.goal):
            raise ValidationError("struggle and goal are required")
        plan = resolve_plan_type(payload.plan_type)

        return _generate(
            "/api/routines/from-text/simple",
            TEXT_FAILED,
            lambda: SimpleRoutineOut(
                **generate_routine_from_text(
                    gateway, settings, plan, payload.struggle, payload.goal
                )
            ),
        )

    # -----------------------------------------------------------------------
    # Routine from photo (vision)
    # -----------------------------------------------------------------------

    @app.post(
        "/api/routines/from-photo",
        response_model=PhotoRoutineOut,
    )
    def routine_from_photo(
        payload: Optional[PhotoRoutineIn] = None,
        gateway: ModelGateway = Depends(get_gateway),
        settings: Settings = Depends(get_settings),
    ):
        payload = payload or PhotoRoutineIn()
        if _blank(payload.image_base64):
            raise ValidationError("imageBase64 is required")
        plan = resolve_plan_type(payload.plan_type)

        return _generate(
            "/api/routines/from-photo",
            PHOTO_FAILED,
            lambda: PhotoRoutineOut(
                **generate_photo_routine(
                    gateway,
                    settings,
                    plan,
                    payload.image_base64,
                    room_name=payload.room_name,
                    goal=payload.goal,
                    notes=payload.notes,
                )
            ),
        )

    # -----------------------------------------------------------------------
    # Quick routines (overwhelmed / fiveMin / guests / lowEnergy)
    # -----------------------------------------------------------------------

    @app.post("/api/quick-routine", response_model=QuickRoutineOut)
    def quick_routine(
        payload: Optional[QuickRoutineIn] = None,
        gateway: ModelGateway = Depends(get_gateway),
        settings: Settings = Depends(get_settings),
    ):
        payload = payload or QuickRoutineIn()
        if _blank(payload.preset):
            raise ValidationError("preset is required")
        plan = resolve_plan_type(payload.plan_type)

        return _generate(
            "/api/quick-routine",
            QUICK_FAILED,
            lambda: QuickRoutineOut(
                **generate_quick_routine(gateway, settings, payload.preset, plan)
            ),
        )

    return app


def main() -> None:
    """CLI entry point: validate config, then serve."""
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    settings.require_api_key()

    app = create_app(settings, ModelGateway.from_settings(settings))
    logger.info("Clarity backend running on http://localhost:%d", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
