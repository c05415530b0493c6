"""
Database session management for the campaign workflow service.

Two kinds of sessions are handed out:

- ``get_db_session()`` for shared tables (organizations, notifications).
- ``get_tenant_session(schema_name)`` for an organization's own schema. Tenant
  models are declared against the placeholder schema ``tenant`` and the
  session's connection translates it to the organization's schema.
"""

import logging
import os
import time
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.exc import DisconnectionError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, scoped_session, sessionmaker

from src.core.config import get_config
from src.core.database.db_config import get_connection_string, mask_connection_string
from src.core.database.models import TENANT_SCHEMA
from src.core.utils.tenant_utils import validate_schema_name

logger = logging.getLogger(__name__)

# Module-level globals for lazy initialization
_engine: Engine | None = None
_session_factory: sessionmaker | None = None
_scoped_session: scoped_session | None = None

# Circuit breaker state
_last_health_check: float = 0.0
_health_check_interval = 60
_is_healthy = True


def get_engine() -> Engine:
    """Get or create the database engine (lazy initialization)."""
    global _engine, _session_factory, _scoped_session

    if _engine is None:
        # Unit tests should mock database access, not use real connections
        if os.environ.get("PODFLOW_TESTING") and not os.environ.get("DATABASE_URL"):
            raise RuntimeError(
                "Unit tests should not create real database connections. "
                "Either mock the session factory or set DATABASE_URL for integration tests. "
                "Use @pytest.mark.requires_db for integration tests."
            )

        connection_string = get_connection_string()

        db_settings = get_config().database
        query_timeout = db_settings.query_timeout

        _engine = create_engine(
            connection_string,
            pool_size=10,
            max_overflow=20,
            pool_timeout=db_settings.pool_timeout,
            pool_recycle=3600,
            pool_pre_ping=True,
            echo=False,
            connect_args={"connect_timeout": db_settings.connect_timeout},
        )

        @event.listens_for(_engine, "connect")
        def set_statement_timeout(dbapi_conn, connection_record):
            """Set statement_timeout on new connections."""
            cursor = dbapi_conn.cursor()
            cursor.execute(f"SET statement_timeout = '{query_timeout * 1000}'")
            cursor.close()

        _session_factory = sessionmaker(bind=_engine)
        _scoped_session = scoped_session(_session_factory)
        logger.info(f"Database engine initialized for {mask_connection_string(connection_string)}")

    return _engine


def reset_engine() -> None:
    """Reset engine for testing - closes existing connections and clears global state."""
    global _engine, _session_factory, _scoped_session

    if _scoped_session is not None:
        _scoped_session.remove()
        _scoped_session = None

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _session_factory = None


def reset_health_state() -> None:
    """Reset circuit breaker health state for testing."""
    global _is_healthy, _last_health_check
    _is_healthy = True
    _last_health_check = 0


def get_scoped_session() -> scoped_session:
    """Get the scoped session factory (lazy initialization)."""
    get_engine()
    assert _scoped_session is not None
    return _scoped_session


def _fail_fast_if_unhealthy() -> None:
    if not _is_healthy and time.time() - _last_health_check < 10:
        raise RuntimeError("Database is unhealthy - failing fast to prevent cascading failures")


def _mark_unhealthy() -> None:
    global _is_healthy, _last_health_check
    _is_healthy = False
    _last_health_check = time.time()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Context manager for sessions on the shared schema.

    Usage:
        with get_db_session() as session:
            org = session.get(Organization, organization_id)
            session.add(new_object)
            session.commit()  # Explicit commit needed

    The session will automatically rollback on exception and always be closed.
    """
    _fail_fast_if_unhealthy()

    scoped = get_scoped_session()
    session = scoped()
    try:
        yield session
    except (OperationalError, DisconnectionError) as e:
        logger.error(f"Database connection error: {e}")
        session.rollback()
        scoped.remove()
        _mark_unhealthy()
        raise
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}")
        session.rollback()
        raise
    finally:
        session.close()
        scoped.remove()


@contextmanager
def get_tenant_session(schema_name: str) -> Generator[Session, None, None]:
    """Context manager for a session bound to one organization's schema.

    Every statement issued through the session has the ``tenant`` placeholder
    schema rewritten to ``schema_name``. Commit is explicit; any exception
    rolls the session back.

    Raises:
        ValueError: If schema_name is not a valid schema identifier
    """
    validate_schema_name(schema_name)
    _fail_fast_if_unhealthy()

    engine = get_engine()
    bind = engine.execution_options(schema_translate_map={TENANT_SCHEMA: schema_name})
    session = Session(bind=bind)
    try:
        yield session
    except (OperationalError, DisconnectionError) as e:
        logger.error(f"Database connection error in schema {schema_name}: {e}")
        session.rollback()
        _mark_unhealthy()
        raise
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_database_health(force: bool = False) -> tuple[bool, str]:
    """
    Check database health with query timeout protection.

    Args:
        force: Force immediate check, ignoring cache interval

    Returns:
        Tuple of (is_healthy, message)
    """
    global _last_health_check, _is_healthy

    if not force and time.time() - _last_health_check < _health_check_interval:
        return _is_healthy, "cached"

    try:
        with get_db_session() as session:
            session.execute(text("SELECT 1")).scalar()

        _is_healthy = True
        _last_health_check = time.time()
        return True, "healthy"

    except Exception as e:
        _mark_unhealthy()
        error_msg = f"Database unhealthy: {type(e).__name__}: {str(e)[:100]}"
        logger.error(error_msg)
        return False, error_msg
