"""
Connection pool management for the identity service.

The pool is an explicitly owned handle: the app factory builds one
:class:`ConnectionPoolManager` and hands it to the query executor and the
lifecycle controller. Nothing else touches the SQLAlchemy engine.
"""
from contextlib import contextmanager
from itertools import count
from typing import Any, Dict, Iterator, Optional, Union
import logging
import threading

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine, Connection, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import QueuePool

from .config import Settings
from .errors import AcquisitionError

logger = logging.getLogger(__name__)

Base = declarative_base()


class PooledConnection:
    """A connection leased from the pool for the duration of one query."""

    def __init__(self, connection: Connection, handle_id: int):
        self.connection = connection
        self.id = handle_id
        self.released = False

    def __repr__(self) -> str:
        return f"<PooledConnection id={self.id} released={self.released}>"


class ConnectionPoolManager:
    """Owns a bounded set of live database connections."""

    def __init__(
        self,
        url: Union[str, URL],
        *,
        pool_size: int = 10,
        idle_timeout: float = 30.0,
        connect_timeout: float = 30.0,
        ssl_required: bool = False,
    ):
        if pool_size < 1:
            raise ValueError("pool_size must be at least 1")
        self.url = make_url(url)
        self.pool_size = pool_size
        self.idle_timeout = idle_timeout
        self.connect_timeout = connect_timeout
        self.ssl_required = ssl_required

        self._engine: Optional[Engine] = None
        self._state = threading.Condition()
        self._ids = count(1)
        self._in_use = 0
        self._pending = 0
        self._returning = 0
        self._peak_in_use = 0
        self._closing = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConnectionPoolManager":
        return cls(
            settings.database_url(),
            pool_size=settings.DB_POOL_SIZE,
            idle_timeout=settings.DB_IDLE_TIMEOUT_SECONDS,
            connect_timeout=settings.DB_CONNECT_TIMEOUT_SECONDS,
            ssl_required=settings.DB_SSL_REQUIRE,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def initialize(self) -> None:
        """Create the engine and its bounded pool. Safe to call more than once."""
        with self._state:
            if self._engine is not None:
                return
            self._engine = create_engine(self.url, **self._engine_options())
            self._closing = False
        logger.info(
            "Connection pool created: url=%s size=%s connect_timeout=%ss",
            self.url.render_as_string(hide_password=True),
            self.pool_size,
            self.connect_timeout,
        )

    def close(self, drain_timeout: Optional[float] = None) -> bool:
        """
        Stop handing out connections, wait for leased ones to come back, then
        dispose the engine.

        Returns:
            bool: True if every leased connection was returned before disposal
        """
        with self._state:
            self._closing = True
            drained = self._state.wait_for(
                lambda: self._in_use == 0 and self._pending == 0 and self._returning == 0,
                timeout=drain_timeout,
            )
            engine, self._engine = self._engine, None

        if not drained:
            logger.warning(
                "Closing connection pool with %s connection(s) still leased", self._in_use
            )
        if engine is not None:
            engine.dispose()
            logger.info("Connection pool closed")
        return drained

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise AcquisitionError("Connection pool is not initialized")
        return self._engine

    @property
    def is_open(self) -> bool:
        return self._engine is not None and not self._closing

    # ------------------------------------------------------------------
    # Acquire / release
    # ------------------------------------------------------------------
    def acquire(self) -> PooledConnection:
        """
        Lease a connection, waiting at most ``connect_timeout`` seconds.

        Raises:
            AcquisitionError: pool exhausted, store unreachable or pool closed
        """
        with self._state:
            if self._engine is None or self._closing:
                raise AcquisitionError("Connection pool is closed")
            engine = self._engine
            self._pending += 1

        connection = None
        try:
            connection = engine.connect()
        except SQLAlchemyError as exc:
            raise AcquisitionError(f"Could not acquire database connection: {exc}") from exc
        finally:
            with self._state:
                self._pending -= 1
                if connection is not None:
                    self._in_use += 1
                    self._peak_in_use = max(self._peak_in_use, self._in_use)
                self._state.notify_all()

        return PooledConnection(connection, next(self._ids))

    def release(self, handle: PooledConnection) -> None:
        """Return a leased connection. Releasing the same handle twice is a no-op."""
        with self._state:
            if handle.released:
                logger.debug("Ignoring double release of %r", handle)
                return
            handle.released = True
            # count down before the connection becomes available to other threads
            self._in_use -= 1
            self._returning += 1

        try:
            handle.connection.close()
        except SQLAlchemyError as exc:
            logger.warning("Error returning connection %s to the pool: %s", handle.id, exc)
        finally:
            with self._state:
                self._returning -= 1
                self._state.notify_all()

    @contextmanager
    def connection(self) -> Iterator[PooledConnection]:
        """Scoped acquisition: the handle is released on every exit path."""
        handle = self.acquire()
        try:
            yield handle
        finally:
            self.release(handle)

    def probe(self) -> bool:
        """
        Run one trivial round trip against the store.

        Returns:
            bool: True if the store answered, False otherwise
        """
        try:
            with self.connection() as handle:
                handle.connection.execute(text("SELECT 1")).scalar()
            return True
        except (AcquisitionError, SQLAlchemyError) as e:
            logger.warning(f"Database probe failed: {e}")
            return False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def max_size(self) -> int:
        return self.pool_size

    @property
    def in_use(self) -> int:
        with self._state:
            return self._in_use

    @property
    def peak_in_use(self) -> int:
        with self._state:
            return self._peak_in_use

    def stats(self) -> Dict[str, Any]:
        with self._state:
            return {
                "max_size": self.pool_size,
                "in_use": self._in_use,
                "waiting": self._pending,
                "peak_in_use": self._peak_in_use,
                "open": self._engine is not None and not self._closing,
            }

    def _engine_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "poolclass": QueuePool,
            "pool_size": self.pool_size,
            "max_overflow": 0,
            "pool_timeout": self.connect_timeout,
            "pool_recycle": max(1, int(self.idle_timeout)),
            "pool_pre_ping": True,
        }
        backend = self.url.get_backend_name()
        if backend == "sqlite":
            options["connect_args"] = {"check_same_thread": False, "timeout": self.connect_timeout}
        elif backend == "postgresql":
            connect_args: Dict[str, Any] = {"connect_timeout": max(1, int(self.connect_timeout))}
            if self.ssl_required:
                connect_args["sslmode"] = "require"
            options["connect_args"] = connect_args
        return options


def init_db(pool: ConnectionPoolManager) -> None:
    """
    Create all tables on the pool's engine.
    Should be called once the store has answered the startup probe.
    """
    from .models import Account  # noqa: F401  Import here to register the table with Base

    try:
        Base.metadata.create_all(bind=pool.engine)
        logger.info("Database schema initialized")
    except SQLAlchemyError as e:
        logger.error(f"Failed to initialize database schema: {e}")
        raise
