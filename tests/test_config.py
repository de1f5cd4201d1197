"""
Tests for environment-driven settings
"""

from app.core.config import Settings

def test_defaults():
    settings = Settings(_env_file=None)
    
    assert settings.RECOMMENDATION_LIMIT == 5
    assert settings.SMALL_PARTY_MAX == 8
    assert settings.MAX_PARTY_SIZE == 25
    assert Settings.model_config["env_file"] == ".env"

def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("RECOMMENDATION_LIMIT", "3")
    monkeypatch.setenv("COMMIT_LOCK_TIMEOUT_SECONDS", "1.5")
    
    settings = Settings(_env_file=None)
    
    assert settings.RECOMMENDATION_LIMIT == 3
    assert settings.COMMIT_LOCK_TIMEOUT_SECONDS == 1.5
