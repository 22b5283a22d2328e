"""
Health endpoints for a service backed by one SQLAlchemy engine.

    /health          process is up, no dependency is touched
    /health/live     bare liveness for the orchestrator
    /health/ready    database round trip, disk and memory headroom
    /health/startup  required tables exist
    /metrics         process figures plus whatever the service adds

Each check returns a component dict; the worst component decides the
overall status and ``fail`` turns into a 503.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional
import logging
import os
import time

import psutil
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

Check = Dict[str, Any]

# (fail below, warn below)
DISK_FREE_GB = (1, 5)
MEMORY_AVAILABLE_MB = (100, 500)


class HealthStatus(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


_SEVERITY = {HealthStatus.PASS: 0, HealthStatus.WARN: 1, HealthStatus.FAIL: 2}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _component(state: HealthStatus, component_type: str, **fields) -> Check:
    return {"status": state, "componentType": component_type, "time": _utc_now(), **fields}


def _graded(value: float, limits, unit: str, component_type: str = "system") -> Check:
    fail_below, warn_below = limits
    if value < fail_below:
        state = HealthStatus.FAIL
    elif value < warn_below:
        state = HealthStatus.WARN
    else:
        state = HealthStatus.PASS
    return _component(state, component_type, observedValue=f"{value:.2f}", observedUnit=unit)


class ServiceHealth:
    """Builds the health routes for one service"""

    def __init__(
        self,
        service_name: str,
        version: str = "1.0.0",
        engine: Optional[Engine] = None,
        required_tables: Iterable[str] = (),
        extra_metrics: Optional[Callable[[], Dict[str, Any]]] = None,
    ):
        self.service_name = service_name
        self.version = version
        self.engine = engine
        self.required_tables = tuple(required_tables)
        self.extra_metrics = extra_metrics
        self.start_time = time.time()
        self.checks_performed = 0

    def create_health_router(self) -> APIRouter:
        router = APIRouter(tags=["health"])

        @router.get("/health", status_code=status.HTTP_200_OK)
        async def health_check() -> Dict[str, Any]:
            return {
                "status": HealthStatus.PASS,
                "service": self.service_name,
                "version": self.version,
                "releaseId": os.getenv("RELEASE_ID", "unknown"),
                "timestamp": _utc_now(),
            }

        @router.get("/health/live", status_code=status.HTTP_200_OK)
        async def liveness() -> Dict[str, Any]:
            return {"status": "alive"}

        @router.get("/health/ready")
        async def readiness() -> JSONResponse:
            checks = self.perform_readiness_checks()
            overall = self.calculate_overall_status(checks)
            return self._respond(overall, {
                "status": overall,
                "serviceId": self.service_name,
                "version": self.version,
                "checks": checks,
                "timestamp": _utc_now(),
            })

        @router.get("/health/startup")
        async def startup() -> JSONResponse:
            checks = self.perform_startup_checks()
            overall = self.calculate_overall_status(checks)
            label = "starting" if overall == HealthStatus.FAIL else "started"
            return self._respond(overall, {"status": label, "checks": checks})

        @router.get("/metrics")
        async def metrics() -> Dict[str, Any]:
            process = psutil.Process()
            memory = process.memory_info()
            body = {
                "service": self.service_name,
                "version": self.version,
                "uptime_seconds": round(time.time() - self.start_time, 3),
                "checks_performed": self.checks_performed,
                "timestamp": _utc_now(),
                "process": {
                    "memory_rss_bytes": memory.rss,
                    "cpu_percent": process.cpu_percent(),
                    "num_threads": process.num_threads(),
                },
            }
            if self.extra_metrics is not None:
                body["service_metrics"] = self.extra_metrics()
            return body

        return router

    @staticmethod
    def _respond(overall: HealthStatus, content: Dict[str, Any]) -> JSONResponse:
        code = status.HTTP_503_SERVICE_UNAVAILABLE if overall == HealthStatus.FAIL else status.HTTP_200_OK
        return JSONResponse(status_code=code, content=content)

    def perform_readiness_checks(self) -> Dict[str, Check]:
        self.checks_performed += 1
        return {
            "database:connectivity": self._check_database(),
            "storage:disk_space": self._check_disk_space(),
            "system:memory": self._check_memory(),
        }

    def perform_startup_checks(self) -> Dict[str, Check]:
        return {"database:schema": self._check_schema()}

    def _check_database(self) -> Check:
        if self.engine is None:
            return _component(HealthStatus.WARN, "datastore", output="No engine configured")
        started = time.perf_counter()
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return _component(HealthStatus.FAIL, "datastore", output=str(e))
        elapsed_ms = (time.perf_counter() - started) * 1000
        return _component(HealthStatus.PASS, "datastore",
                          observedValue=f"{elapsed_ms:.2f}", observedUnit="ms")

    def _check_schema(self) -> Check:
        if self.engine is None:
            return _component(HealthStatus.WARN, "datastore", output="No engine configured")
        try:
            inspector = inspect(self.engine)
            missing = [t for t in self.required_tables if not inspector.has_table(t)]
        except Exception as e:
            logger.error(f"Schema health check failed: {e}")
            return _component(HealthStatus.FAIL, "datastore", output=str(e))
        if missing:
            return _component(HealthStatus.FAIL, "datastore", output=f"Missing tables: {', '.join(missing)}")
        return _component(HealthStatus.PASS, "datastore")

    def _check_disk_space(self) -> Check:
        try:
            free_gb = psutil.disk_usage("/").free / (1024 ** 3)
        except OSError as e:
            return _component(HealthStatus.WARN, "system", output=str(e))
        return _graded(free_gb, DISK_FREE_GB, "GB")

    def _check_memory(self) -> Check:
        available_mb = psutil.virtual_memory().available / (1024 ** 2)
        return _graded(available_mb, MEMORY_AVAILABLE_MB, "MB")

    @staticmethod
    def calculate_overall_status(checks: Dict[str, Check]) -> HealthStatus:
        worst = HealthStatus.PASS
        for check in checks.values():
            state = HealthStatus(check.get("status", HealthStatus.PASS))
            if _SEVERITY[state] > _SEVERITY[worst]:
                worst = state
        return worst
