from __future__ import annotations
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from questrank.config import settings
from questrank.logging_setup import configure_logging
from questrank.routes.system import router as system_router
from questrank.routes.submissions import router as submissions_router
from questrank.routes.leaderboard import router as leaderboard_router
from questrank.routes.ledger import router as ledger_router
import structlog

configure_logging()
log = structlog.get_logger()

@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("startup", env=settings.environment, version=settings.app_version, git_sha=settings.git_sha,
             retry_after_rejection=settings.allow_retry_after_rejection)
    yield
    log.info("shutdown")

app = FastAPI(
    title=f"{settings.app_display_name} API",
    version=settings.app_version,
    lifespan=lifespan,
    description=f"{settings.app_display_name} API for challenge progression and leaderboards",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "dev" else settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(system_router)
app.include_router(submissions_router)
app.include_router(leaderboard_router)
app.include_router(ledger_router)

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    structlog.contextvars.bind_contextvars(request_id=rid)
    response: Response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    structlog.contextvars.clear_contextvars()
    return response

def run():
    import uvicorn
    uvicorn.run("questrank.main:app", host=settings.api_host, port=settings.api_port, log_config=None)
