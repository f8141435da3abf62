import time
from threading import Thread

import requests
import schedule
import uvicorn
from fastapi import FastAPI
from tenacity import retry, stop_after_attempt, wait_fixed

from shared.app_logging.logger import CorrelationContext, setup_logging
from shared.config.settings import get_settings

# Setup logging
logger = setup_logging("scheduler")

settings = get_settings()

COLLECTOR_URL = settings.service.collector_url
REQUEST_TIMEOUT = settings.service.http_timeout * 10


@retry(stop=stop_after_attempt(3), wait=wait_fixed(5), reraise=True)
def trigger_ingestion() -> dict:
    """Ask the collector service to run one ingestion pass."""
    url = f"{COLLECTOR_URL}/collect/ingest"
    logger.info(f"Triggering ingestion at {url}")
    response = requests.post(url, timeout=REQUEST_TIMEOUT)
    response.raise_for_status()
    report = response.json()
    logger.info(
        "Ingestion finished: %s created, %s skipped, %s errors",
        report.get("created"), report.get("skipped"), report.get("errors"),
    )
    for provider, reason in (report.get("per_provider_errors") or {}).items():
        logger.warning(f"Provider {provider} was skipped: {reason}")
    return report


def ingestion_job():
    """The scheduled job."""
    with CorrelationContext():
        try:
            trigger_ingestion()
        except Exception:
            logger.exception("Failed to trigger ingestion")


def run_schedule():
    """Run the scheduler."""
    schedule.every().day.at(settings.service.ingest_time).do(ingestion_job)
    logger.info(f"Ingestion scheduled daily at {settings.service.ingest_time}")

    while True:
        schedule.run_pending()
        time.sleep(1)


# FastAPI app for health checks
app = FastAPI(title="NewsHub Scheduler")


@app.get("/health")
def health_check():
    return {"status": "ok", "next_run": str(schedule.next_run()) if schedule.jobs else None}


@app.post("/scheduler/run")
def run_now():
    """Trigger an ingestion pass immediately."""
    return trigger_ingestion()


def run_fastapi():
    """Run the FastAPI app."""
    uvicorn.run(app, host="0.0.0.0", port=8005)


if __name__ == "__main__":
    # Run the scheduler in a separate thread
    scheduler_thread = Thread(target=run_schedule, daemon=True)
    scheduler_thread.start()

    # Run the FastAPI app in the main thread
    run_fastapi()
