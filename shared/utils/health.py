"""
Health check utilities for NewsHub services.
Provides health monitoring and status reporting.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import httpx
from sqlalchemy import text

from shared.app_logging.logger import get_logger
from shared.config.settings import get_settings
from shared.utils.redis_client import get_redis_client


class HealthStatus(Enum):
    """Health status enumeration."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"
    UNKNOWN = "unknown"


@dataclass
class HealthCheck:
    """Individual health check result."""

    name: str
    status: HealthStatus
    message: str
    response_time_ms: Optional[float] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)


def _elapsed_ms(start_time: datetime) -> float:
    return (datetime.now() - start_time).total_seconds() * 1000


class HealthChecker:
    """Health checker for services."""

    def __init__(self, service_name: str, critical: Optional[List[str]] = None):
        self.service_name = service_name
        self.critical = critical or ["database"]
        self.logger = get_logger(f"{service_name}.health")
        self.checks: List[Callable[[], HealthCheck]] = []
        self.settings = get_settings()

    def add_check(self, check_func: Callable[[], HealthCheck]):
        """Add a health check function."""
        self.checks.append(check_func)

    def check_database(self) -> HealthCheck:
        """Check database connectivity."""
        start_time = datetime.now()
        try:
            from shared.database.session import SessionLocal

            with SessionLocal() as session:
                session.execute(text("SELECT 1"))

            return HealthCheck(
                name="database",
                status=HealthStatus.HEALTHY,
                message="Database connection successful",
                response_time_ms=_elapsed_ms(start_time),
            )
        except Exception as e:
            return HealthCheck(
                name="database",
                status=HealthStatus.UNHEALTHY,
                message=f"Database connection failed: {str(e)}",
                response_time_ms=_elapsed_ms(start_time),
            )

    def check_redis(self) -> HealthCheck:
        """Check Redis connectivity. The cache is optional, so failure only degrades."""
        start_time = datetime.now()
        if get_redis_client(self.service_name).ping():
            return HealthCheck(
                name="redis",
                status=HealthStatus.HEALTHY,
                message="Redis connection successful",
                response_time_ms=_elapsed_ms(start_time),
            )
        return HealthCheck(
            name="redis",
            status=HealthStatus.DEGRADED,
            message="Redis unavailable; serving uncached",
            response_time_ms=_elapsed_ms(start_time),
        )

    def check_http_endpoint(self, url: str, name: str = "http_endpoint") -> HealthCheck:
        """Check HTTP endpoint connectivity."""
        start_time = datetime.now()
        try:
            with httpx.Client(timeout=5.0) as client:
                response = client.get(url)
                response.raise_for_status()

            return HealthCheck(
                name=name,
                status=HealthStatus.HEALTHY,
                message=f"HTTP endpoint {name} is accessible",
                response_time_ms=_elapsed_ms(start_time),
            )
        except Exception as e:
            # Provider URLs carry API keys; keep them out of the report.
            return HealthCheck(
                name=name,
                status=HealthStatus.DEGRADED,
                message=f"HTTP endpoint {name} failed: {type(e).__name__}",
                response_time_ms=_elapsed_ms(start_time),
            )

    def run_all_checks(self) -> Dict[str, Any]:
        """Run all registered health checks."""
        results = []
        overall_status = HealthStatus.HEALTHY

        for check_func in self.checks:
            try:
                result = check_func()
            except Exception as e:
                result = HealthCheck(
                    name=getattr(check_func, "__name__", "check"),
                    status=HealthStatus.UNHEALTHY,
                    message=f"Health check failed with exception: {str(e)}",
                )
            results.append(result)

            if result.status == HealthStatus.UNHEALTHY:
                overall_status = HealthStatus.UNHEALTHY
            elif result.status == HealthStatus.DEGRADED and overall_status == HealthStatus.HEALTHY:
                overall_status = HealthStatus.DEGRADED

        return {
            "service": self.service_name,
            "status": overall_status.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": [
                {
                    "name": check.name,
                    "status": check.status.value,
                    "message": check.message,
                    "response_time_ms": check.response_time_ms,
                    "details": check.details,
                    "timestamp": check.timestamp.isoformat(),
                }
                for check in results
            ],
        }

    def readiness(self) -> Dict[str, Any]:
        """Ready when every critical dependency is healthy."""
        health_data = self.run_all_checks()
        critical_checks = [
            check for check in health_data["checks"] if check["name"] in self.critical
        ]
        all_critical_healthy = all(check["status"] == "healthy" for check in critical_checks)

        return {
            "status": "ready" if all_critical_healthy else "not_ready",
            "service": self.service_name,
            "critical_dependencies": {
                check["name"]: check["status"] for check in critical_checks
            },
        }


def create_collector_health_checker() -> HealthChecker:
    """Create health checker for the ingestion service."""
    checker = HealthChecker("collector", critical=["database"])
    checker.add_check(checker.check_database)

    providers = get_settings().providers
    for name, url in (
        ("newsapi", providers.news_api_url),
        ("guardian", providers.guardian_api_url),
        ("nyt", providers.nyt_feed_url),
    ):
        if url:
            checker.add_check(lambda url=url, name=name: checker.check_http_endpoint(url, f"provider_{name}"))
    return checker


def create_news_api_health_checker() -> HealthChecker:
    """Create health checker for the query service."""
    checker = HealthChecker("news_api", critical=["database"])
    checker.add_check(checker.check_database)
    checker.add_check(checker.check_redis)
    return checker
