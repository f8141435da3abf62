import json
import logging

from shared.app_logging.logger import (
    CorrelationContext,
    CorrelationIDFilter,
    JSONFormatter,
    ServiceNameFilter,
    get_correlation_id,
)


def _record(message="Ingestion finished"):
    return logging.LogRecord("collector.orchestrator", logging.INFO, __file__, 1, message, None, None)


def test_correlation_context_sets_and_restores():
    assert get_correlation_id() is None
    with CorrelationContext("run-1") as outer:
        assert outer == "run-1"
        with CorrelationContext() as inner:
            assert get_correlation_id() == inner != "run-1"
        assert get_correlation_id() == "run-1"
    assert get_correlation_id() is None


def test_json_formatter_includes_context_and_extras():
    record = _record()
    record.provider = "newsapi"
    ServiceNameFilter("collector").filter(record)
    with CorrelationContext("run-2"):
        CorrelationIDFilter().filter(record)

    entry = json.loads(JSONFormatter().format(record))

    assert entry["message"] == "Ingestion finished"
    assert entry["service"] == "collector"
    assert entry["correlation_id"] == "run-2"
    assert entry["provider"] == "newsapi"
