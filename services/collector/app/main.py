from contextlib import asynccontextmanager
from typing import Callable, List

from fastapi import Depends, FastAPI, HTTPException, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import Session

from services.collector.app.adapters import ProviderAdapter, build_adapters
from services.collector.app.orchestrator import run_ingestion
from shared.app_logging.logger import setup_logging
from shared.database.session import SessionLocal, init_db
from shared.schemas.articles import IngestionReport
from shared.utils.health import create_collector_health_checker

# Setup logging
logger = setup_logging("collector")

# Create health checker
health_checker = create_collector_health_checker()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Collector service started")
    yield
    logger.info("Collector service shut down")


app = FastAPI(title="NewsHub Collector Service", lifespan=lifespan)


def get_session_factory() -> Callable[[], Session]:
    return SessionLocal


def get_adapters() -> List[ProviderAdapter]:
    return build_adapters()


@app.get("/collector/health")
def health_check():
    """Comprehensive health check endpoint."""
    return health_checker.run_all_checks()


@app.get("/collector/health/live")
def liveness_check():
    """Liveness check endpoint."""
    return {"status": "alive", "service": "collector"}


@app.get("/collector/health/ready")
def readiness_check():
    """Readiness check endpoint."""
    return health_checker.readiness()


@app.get("/collector/metrics")
def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.api_route("/collect/ingest", methods=["GET", "POST"], response_model=IngestionReport)
async def ingest(
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    adapters: List[ProviderAdapter] = Depends(get_adapters),
):
    """Pull every provider once and persist what normalizes cleanly.

    Provider and record failures end up in the report; only a failure of
    the run itself is an error response.
    """
    try:
        return await run_ingestion(session_factory, adapters)
    except Exception as e:
        logger.exception("Ingestion run failed: %s", e)
        raise HTTPException(500, "Internal Server Error")
