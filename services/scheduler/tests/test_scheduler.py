"""Tests for the ingestion scheduler."""
from unittest.mock import Mock, patch

import pytest
import requests
from fastapi.testclient import TestClient

from services.scheduler.src import main as scheduler

REPORT = {
    "created": 12,
    "skipped": 3,
    "errors": 0,
    "per_provider_errors": {"The Guardian": "non-success response: HTTP 503"},
}


def _ok_response():
    response = Mock()
    response.json.return_value = REPORT
    response.raise_for_status.return_value = None
    return response


@patch("services.scheduler.src.main.requests.post")
def test_trigger_ingestion_posts_to_collector(mock_post):
    mock_post.return_value = _ok_response()

    report = scheduler.trigger_ingestion()

    assert report == REPORT
    url = mock_post.call_args.args[0]
    assert url == f"{scheduler.COLLECTOR_URL}/collect/ingest"


@patch("services.scheduler.src.main.requests.post")
def test_trigger_ingestion_retries_then_raises(mock_post, monkeypatch):
    monkeypatch.setattr(scheduler.trigger_ingestion.retry, "sleep", lambda seconds: None)
    mock_post.side_effect = requests.ConnectionError("collector down")

    with pytest.raises(requests.ConnectionError):
        scheduler.trigger_ingestion()

    assert mock_post.call_count == 3


@patch("services.scheduler.src.main.trigger_ingestion")
def test_ingestion_job_swallows_failures(mock_trigger):
    mock_trigger.side_effect = RuntimeError("boom")
    scheduler.ingestion_job()
    mock_trigger.assert_called_once()


@patch("services.scheduler.src.main.requests.post")
def test_run_now_endpoint(mock_post):
    mock_post.return_value = _ok_response()
    client = TestClient(scheduler.app)

    response = client.post("/scheduler/run")

    assert response.status_code == 200
    assert response.json()["created"] == 12


def test_health_endpoint():
    client = TestClient(scheduler.app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
