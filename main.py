# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
On-Call Resolution Service
==========================
Answers "who is on call for this schedule right now (or at instant T)?"
by reconciling recurring daily/weekly rotations with one-off overrides in
the schedule's own time zone.

Resolution order:
    active override ─► first active rotation ─► nobody (null)

Port: 8003
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from oncall_engine.controllers import oncall_controller, schedule_controller, system_controller
from oncall_engine.core.config import settings
from oncall_engine.core.dependencies import get_schedule_repo, get_schedule_service
from oncall_engine.core.logging import get_logger
from oncall_engine.middleware import MetricsMiddleware, RequestIDMiddleware

logger = get_logger(settings.SERVICE_NAME)


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Seed demo data on startup when enabled."""
    if settings.SEED_DEFAULT_SCHEDULES and get_schedule_repo().count() == 0:
        get_schedule_service().seed_defaults()
    logger.info(
        "%s v%s starting on port %d",
        settings.SERVICE_NAME, settings.SERVICE_VERSION, settings.SERVICE_PORT,
    )
    yield
    logger.info("%s shutting down", settings.SERVICE_NAME)


app = FastAPI(
    title="On-Call Resolution Service",
    description="Resolves the on-call user for a schedule from rotations and overrides.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    req_id = getattr(request.state, "request_id", None)
    logger.exception("Unhandled exception", extra={"request_id": req_id})
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "request_id": req_id},
    )


app.include_router(system_controller.router)
app.include_router(schedule_controller.router)
app.include_router(oncall_controller.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.SERVICE_PORT)
