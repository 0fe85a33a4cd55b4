"""
test_config.py — Tests for app/config.py settings

Called by: pytest
Depends on: app/config.py
"""

from app.config import Settings


def test_defaults():
    s = Settings(_env_file=None)
    assert s.party_id_max_attempts == 5
    assert s.default_gst_rate == 18
    assert s.api_key == ""


def test_environment_flags():
    assert Settings(_env_file=None, app_env="production").is_production
    assert Settings(_env_file=None, app_env="Development").is_development
    assert not Settings(_env_file=None, app_env="staging").is_development


def test_cors_origin_list():
    s = Settings(_env_file=None, cors_origins="http://a.test, http://b.test ,")
    assert s.cors_origin_list == ["http://a.test", "http://b.test"]


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("PARTY_ID_MAX_ATTEMPTS", "3")
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "false")
    s = Settings(_env_file=None)
    assert s.party_id_max_attempts == 3
    assert s.rate_limit_enabled is False
