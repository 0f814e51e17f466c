"""Configuration loading from the environment."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy.pool import StaticPool

from habitstreak.config import BaseConfig, TestingConfig
from habitstreak.infra.database import bootstrap_database


def test_defaults_use_sqlite_in_data_dir(monkeypatch, tmp_path):
    monkeypatch.setenv("HABITSTREAK_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("HABITSTREAK_DATABASE_URL", raising=False)
    monkeypatch.delenv("HABITSTREAK_DEV_MODE", raising=False)
    monkeypatch.delenv("HABITSTREAK_LOG_LEVEL", raising=False)

    config = BaseConfig()

    assert Path(config.DATA_DIR).is_dir()
    assert config.DATABASE_URL == f"sqlite:///{tmp_path / 'data' / 'habitstreak.db'}"
    assert config.DEV_MODE is True
    assert config.LOG_LEVEL == "INFO"
    assert config.is_sqlite
    assert config.sqlalchemy_engine_options() == {"connect_args": {"check_same_thread": False}}


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("HABITSTREAK_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("HABITSTREAK_DATABASE_URL", "postgresql://localhost/habits")
    monkeypatch.setenv("HABITSTREAK_DEV_MODE", "off")
    monkeypatch.setenv("HABITSTREAK_LOG_LEVEL", "debug")

    config = BaseConfig()

    assert config.DATABASE_URL == "postgresql://localhost/habits"
    assert config.DEV_MODE is False
    assert config.LOG_LEVEL == "DEBUG"
    assert not config.is_sqlite
    assert config.sqlalchemy_engine_options() == {}


def test_testing_config_shares_one_in_memory_database(monkeypatch, tmp_path):
    monkeypatch.setenv("HABITSTREAK_DATA_DIR", str(tmp_path))

    config = TestingConfig()

    assert config.DATABASE_URL == "sqlite://"
    assert config.sqlalchemy_engine_options()["poolclass"] is StaticPool

    engine, session_factory = bootstrap_database(config)
    try:
        from habitstreak.models import User

        with session_factory() as session:
            session.add(User(username="first"))
        with session_factory() as session:
            assert session.get(User, 1).username == "first"
    finally:
        engine.dispose()


def test_session_scope_rolls_back_on_error(monkeypatch, tmp_path):
    monkeypatch.setenv("HABITSTREAK_DATA_DIR", str(tmp_path))
    engine, session_factory = bootstrap_database(TestingConfig())
    try:
        from habitstreak.models import User

        with pytest.raises(RuntimeError):
            with session_factory() as session:
                session.add(User(username="ghost"))
                session.flush()
                raise RuntimeError("abort")

        with session_factory() as session:
            assert session.get(User, 1) is None
    finally:
        engine.dispose()
