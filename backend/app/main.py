import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import UploadConfig, get_settings
from app.services.uploads import UploadService
from app.api.routers import uploads as uploads_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    app.state.upload_service = UploadService(UploadConfig.from_settings(settings))
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    logging.getLogger("app").setLevel(settings.log_level.upper())
    app = FastAPI(
        debug=settings.debug,
        title="Soju Upload Handler",
        lifespan=lifespan,
    )

    app.include_router(uploads_router.router)

    return app


app = create_app()
