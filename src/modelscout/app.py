"""FastAPI application factory for the modelscout service."""

from __future__ import annotations

from fastapi import FastAPI

from modelscout import __version__
from modelscout.config import ModelScoutSettings, load_settings
from modelscout.routes import corpus, embeddings, health, tools
from modelscout.services import Services, create_services
from modelscout.utils.paths import find_project_root


def create_app(
    settings: ModelScoutSettings | None = None,
    services: Services | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Settings are loaded from the user/project settings files and
    MODELSCOUT_* environment variables unless given explicitly.
    """
    if services is None:
        if settings is None:
            settings = load_settings(find_project_root())
        services = create_services(settings)

    app = FastAPI(
        title="modelscout",
        version=__version__,
        description="Local sentence embeddings and retrieval over documentation and model definitions",
    )
    app.state.services = services

    app.include_router(health.router)
    app.include_router(embeddings.router)
    app.include_router(corpus.router)
    app.include_router(tools.router)

    return app
