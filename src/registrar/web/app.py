"""
Registrar Web - FastAPI application.

Serves the onboarding wizard API.
"""

import logging

from fastapi import FastAPI

from onboarding.api import router as onboarding_router
from registrar import __version__
from registrar.config import configure_logging, settings
from registrar.llm.prompt_logger import enable_prompt_logging

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    configure_logging()
    if settings.registrar_log_prompts and settings.is_development:
        enable_prompt_logging(True)

    app = FastAPI(title="Registrar", version=__version__)
    app.include_router(onboarding_router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


app = create_app()
