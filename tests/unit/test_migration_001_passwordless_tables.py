"""Tests for migration 001: passwordless tables.

Runs the migration through alembic against a throwaway SQLite file and
verifies tables, indexes, constraints and a clean downgrade.
"""

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError

from passwordless.core.config import settings

_MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"

_INSERT_DEVICE = text(
    "INSERT INTO passwordless_devices (device_id_hash, email, phone_number) "
    "VALUES (:hash, :email, :phone)"
)
_INSERT_USER = text(
    "INSERT INTO passwordless_users (user_id, email, phone_number, time_joined) "
    "VALUES (:id, :email, :phone, 0)"
)


# =============================================================================
# Helpers
# =============================================================================


def _create_alembic_config() -> Config:
    """Create alembic Config without ini file.

    Avoids fileConfig() which disables existing loggers and breaks
    pytest's caplog fixture for tests running after migration tests.
    """
    cfg = Config()
    cfg.set_main_option("script_location", str(_MIGRATIONS_DIR))
    return cfg


@pytest.fixture
def migrated_url(tmp_path, monkeypatch):
    """SQLite URL upgraded to head; downgraded to base afterwards."""
    url = f"sqlite:///{tmp_path / 'migration.db'}"
    monkeypatch.setattr(settings, "database_url_override", url)
    cfg = _create_alembic_config()
    command.upgrade(cfg, "head")
    yield url
    command.downgrade(cfg, "base")


# =============================================================================
# Tests
# =============================================================================


class TestUpgrade:
    """Schema after upgrade."""

    def test_creates_tables(self, migrated_url):
        """All three passwordless tables exist."""
        engine = create_engine(migrated_url)
        tables = set(inspect(engine).get_table_names())
        engine.dispose()
        assert {
            "passwordless_devices",
            "passwordless_codes",
            "passwordless_users",
        } <= tables

    def test_creates_lookup_indexes(self, migrated_url):
        """Contact and expiry lookups are indexed."""
        engine = create_engine(migrated_url)
        insp = inspect(engine)
        device_indexes = {ix["name"] for ix in insp.get_indexes("passwordless_devices")}
        code_indexes = {ix["name"] for ix in insp.get_indexes("passwordless_codes")}
        engine.dispose()
        assert {
            "ix_passwordless_devices_email",
            "ix_passwordless_devices_phone_number",
        } <= device_indexes
        assert {
            "ix_passwordless_codes_device_id_hash",
            "ix_passwordless_codes_created_at",
        } <= code_indexes

    def test_failed_attempts_defaults_to_zero(self, migrated_url):
        """New devices start with no failed attempts."""
        engine = create_engine(migrated_url)
        with engine.begin() as conn:
            conn.execute(_INSERT_DEVICE, {"hash": "d1", "email": "a@x", "phone": None})
            value = conn.execute(
                text("SELECT failed_attempts FROM passwordless_devices")
            ).scalar_one()
        engine.dispose()
        assert value == 0

    def test_device_needs_exactly_one_contact(self, migrated_url):
        """A device with both contact values is rejected."""
        engine = create_engine(migrated_url)
        with pytest.raises(IntegrityError), engine.begin() as conn:
            conn.execute(
                _INSERT_DEVICE, {"hash": "d1", "email": "a@x", "phone": "+1"}
            )
        engine.dispose()

    def test_user_needs_a_contact(self, migrated_url):
        """A user without email and phone is rejected."""
        engine = create_engine(migrated_url)
        with pytest.raises(IntegrityError), engine.begin() as conn:
            conn.execute(_INSERT_USER, {"id": "u1", "email": None, "phone": None})
        engine.dispose()

    def test_user_email_is_unique(self, migrated_url):
        """Two users cannot share an email."""
        engine = create_engine(migrated_url)
        with engine.begin() as conn:
            conn.execute(_INSERT_USER, {"id": "u1", "email": "a@x", "phone": None})
        with pytest.raises(IntegrityError), engine.begin() as conn:
            conn.execute(_INSERT_USER, {"id": "u2", "email": "a@x", "phone": None})
        engine.dispose()


class TestDowngrade:
    """Schema after downgrade."""

    def test_downgrade_drops_tables(self, tmp_path, monkeypatch):
        """Downgrading to base removes every passwordless table."""
        url = f"sqlite:///{tmp_path / 'downgrade.db'}"
        monkeypatch.setattr(settings, "database_url_override", url)
        cfg = _create_alembic_config()

        command.upgrade(cfg, "head")
        command.downgrade(cfg, "base")

        engine = create_engine(url)
        tables = set(inspect(engine).get_table_names())
        engine.dispose()
        assert not {t for t in tables if t.startswith("passwordless_")}
