"""
main.py – FastAPI application entry point.

Endpoints
---------
GET  /          – root status
GET  /health    – liveness / readiness probe with version info
POST /analyze   – upload CSV, run graph → metrics → classification, return JSON

Production concerns addressed
------------------------------
- Structured logging (level from LOG_LEVEL)
- File-size guard before parsing the upload
- Request-ID header injected into every response for traceability
- parse_stats returned so callers know about dropped rows / warnings
- Every classifier threshold overridable per request via query parameters
- CORS locked to env-configurable origins
"""
from __future__ import annotations

import logging
import time
import uuid

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from . import __version__
from .classifier import DEFAULT_COLLECTOR_KEY, DEFAULT_MULE_KEY, SORT_KEYS, ClassifierThresholds
from .config import CORS_ORIGINS, LOG_LEVEL, MAX_FILE_SIZE_BYTES
from .formatter import format_output
from .parser import parse_csv
from .pipeline import run_analysis

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)-8s %(name)s │ %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("Mule Flow Engine v%s starting up", __version__)
    yield
    log.info("Mule Flow Engine shutting down")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Mule Flow Engine",
    description="Flag collector and money-mule accounts from transaction flow",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request-ID middleware
# ---------------------------------------------------------------------------
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/", include_in_schema=False)
def root():
    return {"status": "ok", "service": "Mule Flow Engine", "version": __version__}


@app.get("/health")
def health():
    """Liveness / readiness probe."""
    return {
        "status": "healthy",
        "version": __version__,
        "max_file_size_mb": MAX_FILE_SIZE_BYTES // (1024 * 1024),
        "default_thresholds": ClassifierThresholds.from_config().model_dump(),
    }


@app.post("/analyze")
async def analyze(
    file: UploadFile = File(...),
    top_n: Optional[int] = Query(None, ge=0, description="Rows returned per account list"),
    min_in_count: Optional[int] = Query(None),
    max_out_count: Optional[int] = Query(None),
    min_retention: Optional[float] = Query(None),
    mule_min_volume: Optional[float] = Query(None),
    mule_max_imbalance: Optional[float] = Query(None),
    collector_sort: str = Query(DEFAULT_COLLECTOR_KEY),
    mule_sort: str = Query(DEFAULT_MULE_KEY),
):
    """
    Upload a CSV of transactions and receive collector / money-mule candidates.

    Expected CSV columns: step, type, amount, nameOrig, nameDest[, isFraud]
    """
    # ---- basic validation ----
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only CSV files are accepted.")

    for key in (collector_sort, mule_sort):
        if key not in SORT_KEYS:
            raise HTTPException(
                status_code=422,
                detail=f"Unknown sort key {key!r}. Expected one of: {sorted(SORT_KEYS)}",
            )

    overrides = {
        name: value for name, value in {
            "min_in_count": min_in_count,
            "max_out_count": max_out_count,
            "min_retention": min_retention,
            "mule_min_volume": mule_min_volume,
            "mule_max_imbalance": mule_max_imbalance,
        }.items()
        if value is not None
    }
    try:
        thresholds = ClassifierThresholds(
            **{**ClassifierThresholds.from_config().model_dump(), **overrides}
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail=exc.errors(include_url=False, include_context=False),
        )

    file_bytes = await file.read()

    if len(file_bytes) > MAX_FILE_SIZE_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {MAX_FILE_SIZE_BYTES // (1024*1024)} MB.",
        )

    start_time = time.perf_counter()

    # ---- 1. Parse ----
    try:
        transactions, parse_stats = parse_csv(file_bytes)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    if parse_stats.warnings:
        log.warning("Parse warnings for %s: %s", file.filename, parse_stats.warnings)

    # ---- 2. Graph → metrics → classification ----
    run = run_analysis(transactions, thresholds, collector_sort, mule_sort)

    # ---- 3. Format & return ----
    elapsed = time.perf_counter() - start_time
    result = format_output(run, parse_stats, top_n=top_n, processing_time=elapsed)

    log.info(
        "Analysis complete for %s in %.2fs: %d collectors, %d money mules",
        file.filename,
        elapsed,
        result["summary"]["collector_accounts_flagged"],
        result["summary"]["money_mule_accounts_flagged"],
    )

    return JSONResponse(content=result)
