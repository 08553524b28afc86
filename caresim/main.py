"""CareSim Progress Engine - FastAPI app entry point."""
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from caresim.core.config import get_settings
from caresim.core.errors import (
    CurriculumError,
    NotEligibleError,
    curriculum_exception_handler,
    http_exception_handler,
    not_eligible_exception_handler,
    request_id_middleware,
    unhandled_exception_handler,
    validation_exception_handler,
)
from caresim.core.logging import configure_logging
from caresim.db.base import Base
from caresim.db.session import engine
from caresim.routers import api

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield


app = FastAPI(
    title=settings.app_name,
    description="Learner progress aggregation and certificate eligibility",
    lifespan=lifespan,
)

app.middleware("http")(request_id_middleware)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(CurriculumError, curriculum_exception_handler)
app.add_exception_handler(NotEligibleError, not_eligible_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(api.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
