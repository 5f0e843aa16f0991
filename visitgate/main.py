from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from visitgate.api.admissions import router as admissions_router
from visitgate.api.authorizations import router as authorizations_router
from visitgate.api.facilities import router as facilities_router
from visitgate.api.inmates import router as inmates_router
from visitgate.api.restrictions import router as restrictions_router
from visitgate.api.visitors import router as visitors_router
from visitgate.api.visits import router as visits_router
from visitgate.config import settings
from visitgate.db import Base, engine
from visitgate.errors import register_error_handlers
from visitgate.logging import configure_logging
from visitgate.repositories import memory_repositories

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.storage_backend == "memory":
        app.state.memory_repositories = memory_repositories()
    elif settings.database_url.startswith("sqlite"):
        # Local stations run without migrations
        Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title=f"{settings.app_name} API", lifespan=lifespan)
register_error_handlers(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, dependencies=dependencies)
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(admissions_router)
_include_api_router(visits_router)
_include_api_router(visitors_router)
_include_api_router(inmates_router)
_include_api_router(facilities_router)
_include_api_router(authorizations_router)
_include_api_router(restrictions_router)


@app.get("/health")
def health_check():
    return {"status": "ok", "storage": settings.storage_backend}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
