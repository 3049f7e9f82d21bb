# prodtrack/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from prodtrack.config import flags
from prodtrack.core.config import get_settings
from prodtrack.core.logging import setup_logging
from prodtrack.db.base import init_models
from prodtrack.db.session import close_engines
from prodtrack.obs.metrics import PrometheusMiddleware
from prodtrack.obs.metrics import router as metrics_router

settings = get_settings()
setup_logging(settings.LOG_LEVEL, json=settings.JSON_LOG)
logger = logging.getLogger("prodtrack")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_models()
    logger.info("prodtrack starting (env=%s)", settings.ENV)
    yield
    await close_engines()


app = FastAPI(
    title="prodtrack",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(PrometheusMiddleware)


@app.exception_handler(Exception)
async def _unhandled_exc(_req: Request, exc: Exception):
    logger.exception("UNHANDLED_EXC: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": {"error_code": "INTERNAL_ERROR", "message": "internal error", "http_status": 500}},
    )


@app.exception_handler(RequestValidationError)
async def _validation_exc(_req: Request, exc: RequestValidationError):
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(HTTPException)
async def _http_exc(_req: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# ===========================
#     Routers
# ===========================
from prodtrack.api.routers.bundles import router as bundles_router  # noqa: E402
from prodtrack.api.routers.checklists import router as checklists_router  # noqa: E402
from prodtrack.api.routers.features import router as features_router  # noqa: E402
from prodtrack.api.routers.health import router as health_router  # noqa: E402
from prodtrack.api.routers.wip import router as wip_router  # noqa: E402

app.include_router(health_router)
app.include_router(wip_router)
app.include_router(bundles_router)
app.include_router(checklists_router)
app.include_router(features_router)
app.include_router(metrics_router)

# earnings can be switched off per deployment: ENABLE_EARNINGS=false
if flags.ENABLE_EARNINGS:
    from prodtrack.api.routers.earnings import router as earnings_router  # noqa: E402

    app.include_router(earnings_router)


@app.get("/")
async def root():
    return {"name": "prodtrack", "version": "1.0.0"}
