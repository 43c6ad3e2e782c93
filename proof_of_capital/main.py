import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from proof_of_capital.api.routes import router as api_router
from proof_of_capital.config import Settings, load_settings
from proof_of_capital.utils.json_safety import SafeJSONResponse
from proof_of_capital.utils.logging_cfg import build_logger, log_event

log = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    build_logger(level=settings.log_level, file_path=settings.log_file)

    app = FastAPI(
        title="Proof of Capital",
        default_response_class=SafeJSONResponse,
    )
    app.state.settings = settings

    # ── CORS ──
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── API routes ──
    app.include_router(api_router, prefix="/api")

    log_event(log, "app_created", max_curve_levels=settings.max_curve_levels,
              max_scenario_steps=settings.max_scenario_steps)
    return app


app = create_app()


def run():
    import uvicorn

    settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port)
