"""Tests for settings validation."""

import pytest

from sentinel_api.settings import DEFAULT_SECRET_KEY, Settings


def test_development_defaults_are_accepted():
    Settings(environment="development", secret_key=DEFAULT_SECRET_KEY).validate_production_settings()


def test_production_rejects_default_secret():
    settings = Settings(environment="production", secret_key=DEFAULT_SECRET_KEY)
    with pytest.raises(ValueError, match="SECRET_KEY"):
        settings.validate_production_settings()


def test_production_rejects_local_hmac():
    settings = Settings(
        environment="production",
        secret_key="prod-secret",
        signing_key_provider="local_hmac",
        signing_secret="prod-signing-secret",
    )
    with pytest.raises(ValueError, match="local_hmac"):
        settings.validate_production_settings()


def test_production_accepts_kms():
    Settings(
        environment="production",
        secret_key="prod-secret",
        signing_key_provider="aws_kms",
        signing_key_id="alias/noisesentinel-evidence",
        aws_region="ap-south-1",
    ).validate_production_settings()


@pytest.mark.parametrize(
    "overrides",
    [{"sequence_max_attempts": 0}, {"otp_length": 3}, {"otp_length": 11}],
)
def test_chain_limits(overrides):
    with pytest.raises(ValueError):
        Settings(**overrides).validate_production_settings()


def test_database_url_computed():
    assert Settings(database_url="sqlite://").database_url_computed == "sqlite://"
    computed = Settings(database_url=None, postgres_user="u", postgres_password="p", postgres_db="d")
    assert computed.database_url_computed.startswith("postgresql://u:p@")
