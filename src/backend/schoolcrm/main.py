from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from schoolcrm.config import settings
from schoolcrm.db.schema import init_schema
from schoolcrm.routes import catalog, enrollments, health, leads, webhooks
from schoolcrm.utils.logger import get_logger

logger = get_logger(__name__)


def bootstrap_schema() -> None:
    if not settings.db_bootstrap:
        logger.info("DB_BOOTSTRAP disabled; skipping schema bootstrap.")
        return
    init_schema()


@asynccontextmanager
async def lifespan(_: FastAPI):
    bootstrap_schema()
    yield


app = FastAPI(title="School CRM API", version="0.1.0", lifespan=lifespan)

# Webhooks are called from third-party pages and automation tools.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(webhooks.router)
app.include_router(leads.router)
app.include_router(catalog.router)
app.include_router(enrollments.router)
