"""Engine and session lifecycle for the audit store.

The API process creates one engine in its lifespan and shares the session
factory with the pipeline.  Short-lived processes (CLI commands) use
``standalone_session`` to open the engine around a single unit of work.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return the current async engine.

    Raises:
        RuntimeError: If the engine has not been initialized.
    """
    if _engine is None:
        msg = "Audit database engine not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the current session factory.

    Raises:
        RuntimeError: If the engine has not been initialized.
    """
    if _session_factory is None:
        msg = "Audit database session factory not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _session_factory


def engine_options(database_url: str, *, schema: str | None = None, **kwargs: Any) -> dict[str, Any]:
    """Build ``create_async_engine`` keyword arguments for ``database_url``.

    Pooled backends get pool sizing and pre-ping defaults, and ``schema`` is
    put first on the asyncpg ``search_path``.  SQLite URLs pass through
    unchanged apart from the caller's own options.

    Args:
        database_url: Async connection string.
        schema: Optional PostgreSQL schema for isolated environments.
        **kwargs: Caller overrides, which win over the defaults.

    Returns:
        The merged engine options.
    """
    options = dict(kwargs)
    if database_url.startswith("sqlite"):
        return options

    options.setdefault("pool_size", 10)
    options.setdefault("max_overflow", 5)
    options.setdefault("pool_pre_ping", True)
    if schema is not None:
        connect_args = dict(options.get("connect_args") or {})
        server_settings = dict(connect_args.get("server_settings") or {})
        server_settings["search_path"] = f"{schema},public"
        connect_args["server_settings"] = server_settings
        options["connect_args"] = connect_args
    return options


def init_engine(database_url: str, *, schema: str | None = None, **kwargs: Any) -> AsyncEngine:
    """Create and store the async engine and session factory.

    Sessions keep attribute values after commit, so audit records returned by
    the store stay readable once their session has closed.

    Args:
        database_url: Async connection string.
        schema: Optional PostgreSQL schema for isolated environments.
        **kwargs: Additional arguments passed to create_async_engine.

    Returns:
        The created async engine.
    """
    global _engine, _session_factory  # noqa: PLW0603
    _engine = create_async_engine(database_url, **engine_options(database_url, schema=schema, **kwargs))
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _engine


async def dispose_engine() -> None:
    """Dispose of the async engine and release connections."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


@asynccontextmanager
async def standalone_session(database_url: str, *, schema: str | None = None) -> AsyncGenerator[AsyncSession]:
    """Initialize the engine, yield one session, then dispose the engine.

    Args:
        database_url: Async connection string.
        schema: Optional PostgreSQL schema.

    Yields:
        An open AsyncSession.
    """
    init_engine(database_url, schema=schema)
    try:
        async with get_session_factory()() as session:
            yield session
    finally:
        await dispose_engine()
