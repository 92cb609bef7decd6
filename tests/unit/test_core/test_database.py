"""Tests for the audit database engine and session lifecycle."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import text

import audit_trail.core.database as db_module
from audit_trail.core.database import (
    dispose_engine,
    engine_options,
    get_engine,
    get_session_factory,
    init_engine,
    standalone_session,
)


@pytest.fixture(autouse=True)
def _reset_module_state() -> None:
    db_module._engine = None
    db_module._session_factory = None


class TestEngineOptions:
    """Tests for engine_options."""

    def test_sqlite_passes_through(self) -> None:
        assert engine_options("sqlite+aiosqlite:///:memory:", schema="pr_42", echo=True) == {"echo": True}

    def test_pooled_defaults(self) -> None:
        options = engine_options("postgresql+asyncpg://localhost/db")
        assert options == {"pool_size": 10, "max_overflow": 5, "pool_pre_ping": True}

    def test_caller_overrides_win(self) -> None:
        options = engine_options("postgresql+asyncpg://localhost/db", pool_size=2)
        assert options["pool_size"] == 2

    def test_schema_sets_search_path(self) -> None:
        options = engine_options(
            "postgresql+asyncpg://localhost/db",
            schema="pr_42",
            connect_args={"timeout": 5, "server_settings": {"application_name": "audit"}},
        )
        assert options["connect_args"] == {
            "timeout": 5,
            "server_settings": {"application_name": "audit", "search_path": "pr_42,public"},
        }


class TestEngineLifecycle:
    """Tests for init_engine, accessors and dispose_engine."""

    def test_accessors_raise_when_not_initialized(self) -> None:
        with pytest.raises(RuntimeError, match="engine not initialized"):
            get_engine()
        with pytest.raises(RuntimeError, match="session factory not initialized"):
            get_session_factory()

    def test_init_engine_uses_options(self) -> None:
        with patch("audit_trail.core.database.create_async_engine", return_value=MagicMock()) as mock_create:
            init_engine("postgresql+asyncpg://localhost/db", schema="pr_42")
        mock_create.assert_called_once_with(
            "postgresql+asyncpg://localhost/db",
            pool_size=10,
            max_overflow=5,
            pool_pre_ping=True,
            connect_args={"server_settings": {"search_path": "pr_42,public"}},
        )

    async def test_init_and_dispose(self) -> None:
        engine = init_engine("sqlite+aiosqlite:///:memory:")
        assert get_engine() is engine
        assert get_session_factory() is not None

        await dispose_engine()
        assert db_module._engine is None
        assert db_module._session_factory is None

    async def test_dispose_when_no_engine(self) -> None:
        await dispose_engine()


class TestStandaloneSession:
    """Tests for standalone_session."""

    async def test_yields_session_and_disposes(self, tmp_path: Path) -> None:
        async with standalone_session(f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}") as session:
            assert (await session.execute(text("SELECT 1"))).scalar_one() == 1
            assert db_module._engine is not None
        assert db_module._engine is None

    async def test_disposes_on_error(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="boom"):
            async with standalone_session(f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"):
                raise ValueError("boom")
        assert db_module._engine is None
