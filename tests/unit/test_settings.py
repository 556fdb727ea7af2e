"""
Unit tests for application settings.
"""

import pytest
from pydantic import ValidationError

from mlm_matrix.config.settings import Settings


def make_settings(**overrides) -> Settings:
    """Settings without reading .env."""
    values = {"database_url": "sqlite+aiosqlite:///./unit.db", "environment": "test"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestDatabaseUrl:
    """Test DATABASE_URL validation."""

    def test_postgresql_url_gets_async_driver(self):
        """Plain postgresql:// is rewritten to asyncpg."""
        settings = make_settings(database_url="postgresql://u:p@db/matrix")
        assert settings.database_url == "postgresql+asyncpg://u:p@db/matrix"

    def test_unsupported_scheme_rejected(self):
        """MySQL is not supported."""
        with pytest.raises(ValidationError):
            make_settings(database_url="mysql://u:p@db/matrix")


class TestEnvironmentRules:
    """Test environment specific validation."""

    def test_debug_forbidden_in_production(self):
        """DEBUG=true cannot ship."""
        with pytest.raises(ValidationError):
            make_settings(environment="production", debug=True)

    def test_log_level_normalized(self):
        """Level names are upper-cased."""
        assert make_settings(log_level="warning").log_level == "WARNING"

    def test_unknown_log_level_rejected(self):
        """Typos fail at startup."""
        with pytest.raises(ValidationError):
            make_settings(log_level="verbose")

    def test_placement_attempts_bounded(self):
        """At least one placement attempt."""
        with pytest.raises(ValidationError):
            make_settings(placement_max_attempts=0)


class TestEligibleStatuses:
    """Test commission eligible status parsing."""

    def test_default_statuses(self):
        """active and paid trigger commissions by default."""
        assert make_settings().get_eligible_statuses() == frozenset({"active", "paid"})

    def test_custom_statuses_parsed(self):
        """Whitespace and case are ignored."""
        settings = make_settings(commission_eligible_statuses=" Paid , ACTIVE,pending ")
        assert settings.get_eligible_statuses() == frozenset(
            {"paid", "active", "pending"}
        )

    def test_empty_value_falls_back_to_defaults(self):
        """An empty list would silently disable commissions."""
        settings = make_settings(commission_eligible_statuses=" , ")
        assert settings.get_eligible_statuses() == frozenset({"active", "paid"})
