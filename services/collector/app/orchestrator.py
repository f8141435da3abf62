"""Ingestion run: concurrent fetch, then sequential normalize-and-persist per provider."""

import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from prometheus_client import Counter
from sqlalchemy.orm import Session

from services.collector.app.adapters import ProviderAdapter, ProviderFetchError, build_adapters
from services.collector.app.db import save_article
from services.collector.app.resolver import EntityResolutionError
from shared.app_logging.logger import CorrelationContext, get_logger
from shared.schemas.articles import IngestionReport, ProviderReport

logger = get_logger("collector.orchestrator")

RECORDS_PROCESSED = Counter(
    "collector_records_processed_total",
    "Provider records processed, by outcome",
    ["provider", "outcome"],
)
PROVIDER_FAILURES = Counter(
    "collector_provider_failures_total",
    "Provider batches abandoned because the fetch failed",
    ["provider"],
)


class IngestionOrchestrator:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        adapters: Optional[Sequence[ProviderAdapter]] = None,
    ):
        self.session_factory = session_factory
        self.adapters: List[ProviderAdapter] = list(adapters) if adapters is not None else build_adapters()

    async def run(self) -> IngestionReport:
        with CorrelationContext() as run_id:
            report = IngestionReport(started_at=datetime.now(timezone.utc))
            logger.info(f"🚀 Starting ingestion run {run_id} over {len(self.adapters)} providers")

            batches = await asyncio.gather(
                *(adapter.fetch() for adapter in self.adapters),
                return_exceptions=True,
            )

            for adapter, batch in zip(self.adapters, batches):
                stats = report.per_provider.setdefault(adapter.provider, ProviderReport())

                if isinstance(batch, BaseException):
                    if not isinstance(batch, Exception):
                        raise batch
                    if isinstance(batch, ProviderFetchError):
                        reason = str(batch)
                    else:
                        reason = f"unexpected error: {batch!r}"
                    report.per_provider_errors[adapter.provider] = reason
                    PROVIDER_FAILURES.labels(adapter.provider).inc()
                    logger.warning(f"⚠️ Skipping {adapter.provider} batch: {reason}")
                    continue

                stats.fetched = len(batch)
                await asyncio.to_thread(self._ingest_batch, adapter, batch, stats)

                report.created += stats.created
                report.skipped += stats.skipped
                report.errors += stats.errors

            report.finished_at = datetime.now(timezone.utc)
            logger.info(
                f"✅ Ingestion complete: {report.created} created, {report.skipped} skipped, "
                f"{report.errors} errors, {len(report.per_provider_errors)} providers failed"
            )
            return report

    def _ingest_batch(self, adapter: ProviderAdapter, batch: Sequence, stats: ProviderReport) -> None:
        for raw in batch:
            record = adapter.normalize(raw)
            if record is None:
                stats.skipped += 1
                RECORDS_PROCESSED.labels(adapter.provider, "skipped").inc()
                continue

            try:
                save_article(self.session_factory, record)
                stats.created += 1
                RECORDS_PROCESSED.labels(adapter.provider, "created").inc()
            except EntityResolutionError as e:
                logger.warning(f"{adapter.provider}: dropped {record.url!r}: {e}")
                stats.errors += 1
                RECORDS_PROCESSED.labels(adapter.provider, "error").inc()
            except Exception:
                logger.exception(f"{adapter.provider}: failed to persist {record.url!r}")
                stats.errors += 1
                RECORDS_PROCESSED.labels(adapter.provider, "error").inc()

        logger.info(
            f"📄 {adapter.provider}: {stats.created} created, {stats.skipped} skipped, {stats.errors} errors"
        )


async def run_ingestion(
    session_factory: Callable[[], Session],
    adapters: Optional[Sequence[ProviderAdapter]] = None,
) -> IngestionReport:
    return await IngestionOrchestrator(session_factory, adapters).run()
