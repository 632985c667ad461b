"""
Startup probing, degraded mode and graceful shutdown of the data-access layer.
"""
from enum import Enum
from typing import Callable
import logging
import threading
import time

from fastapi import HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings
from .db import ConnectionPoolManager, init_db
from .errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    CREATED = "created"
    READY = "ready"
    DEGRADED = "degraded"
    STOPPING = "stopping"
    STOPPED = "stopped"


class LifecycleController:
    def __init__(
        self,
        pool: ConnectionPoolManager,
        *,
        retries: int = 5,
        delay: float = 1.0,
        backoff: float = 2.0,
        allow_degraded: bool = False,
        drain_timeout: float = 10.0,
        create_schema: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.pool = pool
        self.retries = max(1, retries)
        self.delay = delay
        self.backoff = backoff
        self.allow_degraded = allow_degraded
        self.drain_timeout = drain_timeout
        self.create_schema = create_schema
        self._sleep = sleep
        self._lock = threading.Lock()
        self._probing = False
        self.state = LifecycleState.CREATED

    @classmethod
    def from_settings(
        cls,
        pool: ConnectionPoolManager,
        settings: Settings,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "LifecycleController":
        return cls(
            pool,
            retries=settings.DB_STARTUP_RETRIES,
            delay=settings.DB_RETRY_DELAY_SECONDS,
            backoff=settings.DB_RETRY_BACKOFF,
            allow_degraded=settings.DB_ALLOW_DEGRADED_START,
            drain_timeout=settings.DB_DRAIN_TIMEOUT_SECONDS,
            create_schema=settings.DB_CREATE_SCHEMA,
            sleep=sleep,
        )

    def start(self) -> LifecycleState:
        """
        Initialize the pool and gate startup on the store answering a probe.

        Raises:
            StoreUnavailableError: every attempt failed and degraded start is disabled
        """
        self.pool.initialize()
        if self._probe_with_retry():
            self._mark_ready()
            return self.state

        if self.allow_degraded:
            logger.warning("Starting in degraded mode: database unreachable after %s attempts", self.retries)
            self.state = LifecycleState.DEGRADED
            return self.state

        logger.error("Database unreachable after %s attempts, refusing to start", self.retries)
        self.pool.close(drain_timeout=0)
        self.state = LifecycleState.STOPPED
        raise StoreUnavailableError(f"Database unreachable after {self.retries} attempts")

    def _probe_with_retry(self) -> bool:
        for attempt in range(1, self.retries + 1):
            if self.pool.probe():
                logger.info("Database connection established (attempt %s/%s)", attempt, self.retries)
                return True
            if attempt < self.retries:
                wait = self.delay * self.backoff ** (attempt - 1)
                logger.warning(
                    "Database probe failed (attempt %s/%s), retrying in %.2fs", attempt, self.retries, wait
                )
                self._sleep(wait)
        return False

    def _mark_ready(self) -> None:
        if self.create_schema:
            init_db(self.pool)
        self.state = LifecycleState.READY

    @property
    def accepting(self) -> bool:
        return self.state in (LifecycleState.READY, LifecycleState.DEGRADED)

    def store_available(self) -> bool:
        """
        True when the store is usable; a degraded service re-probes and recovers.

        Only one probe runs at a time. Callers arriving while it is in flight
        get the current answer instead of queueing behind it.
        """
        with self._lock:
            if self.state is LifecycleState.READY:
                return True
            if self.state is not LifecycleState.DEGRADED or self._probing:
                return False
            self._probing = True

        try:
            reachable = self.pool.probe()
        finally:
            with self._lock:
                self._probing = False
        if not reachable:
            return False

        with self._lock:
            if self.state is not LifecycleState.DEGRADED:
                return self.state is LifecycleState.READY
            try:
                self._mark_ready()
            except SQLAlchemyError:
                return False
        logger.info("Database reachable again, leaving degraded mode")
        return True

    def shutdown(self) -> None:
        """Stop accepting work, drain in-flight queries, then close the pool."""
        with self._lock:
            if self.state in (LifecycleState.STOPPING, LifecycleState.STOPPED):
                return
            self.state = LifecycleState.STOPPING
        logger.info("Shutting down: draining in-flight queries")
        drained = self.pool.close(drain_timeout=self.drain_timeout)
        if not drained:
            logger.warning("Drain timeout of %ss elapsed before all queries finished", self.drain_timeout)
        self.state = LifecycleState.STOPPED


def require_store(request: Request) -> None:
    """Route guard: 503 while shutting down or while the store is unreachable."""
    lifecycle: LifecycleController = request.app.state.lifecycle
    if not lifecycle.accepting:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service is shutting down")
    if not lifecycle.store_available():
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database unavailable")
