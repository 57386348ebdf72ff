from __future__ import annotations  # FastAPI server exposing the interview session service

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict, List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agents.llm_bindings import bind_llm_models
from api.routes import install_error_handlers, router
from config import load_config, settings
from storage.migrate import migrate


logger = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parent


def _config_path() -> Path:
    path = Path(settings.APP_CONFIG_PATH)
    return path if path.is_absolute() else ROOT / path


def _llm_routes() -> List[Dict[str, str]]:  # Collect the routes bound to each model key
    path = _config_path()
    if not path.exists():
        return []
    cfg = load_config(path)
    return [
        {"key": key, "route": cfg.llm_routes[route_id].name, "model": cfg.llm_routes[route_id].model}
        for key, route_id in sorted(cfg.registry.items())
        if route_id in cfg.llm_routes
    ]


def create_app(*, bind_models: bool = True) -> FastAPI:
    """Build the app; ``bind_models`` wires the LLM-backed collaborators from the config file."""

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        migrate(settings.DB_PATH)
        path = _config_path()
        if bind_models and path.exists():
            bind_llm_models(load_config(path))
            logger.info("LLM collaborators bound from %s", path)
        elif bind_models:
            logger.warning("No LLM config at %s; bind collaborators before serving", path)
        yield

    app = FastAPI(title="Adaptive Interview API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)
    app.include_router(router)

    @app.get("/api/health")
    def health() -> Dict[str, object]:
        return {"status": "ok", "llm_routes": _llm_routes()}

    return app


app = create_app()
