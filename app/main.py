from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routers.auth import router as auth_router
from .api.routers.me import router as me_router
from .infrastructure.db.engine import create_schema, get_engine
from .shared.config import get_settings


settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    if settings.db_auto_create_schema and settings.postgres_dsn:
        create_schema(get_engine(settings.postgres_dsn))
        logger.info("main: schema_created")
    yield


app = FastAPI(title="Calorie Tracker Auth API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allow_origins),
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials="*" not in settings.cors_allow_origins,
)

app.include_router(auth_router)
app.include_router(me_router)


@app.get("/health")
def health():
    return {"status": "ok"}
