from mythbuster.config import DAY_SECONDS, load_settings

ENV_VARS = [
    "PROVIDER_API_KEY",
    "PROVIDER_MODEL",
    "QUOTA_DAILY_LIMIT",
    "VERIFY_MYTH_TTL_SECONDS",
    "ADMIN_TOKEN",
    "COOKIE_SECURE",
    "REDIS_URL",
    "DATABASE_URL",
]


def _clean_env(monkeypatch, tmp_path, yaml_text=""):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(yaml_text, encoding="utf-8")
    monkeypatch.setenv("CONFIG_PATH", str(path))


def test_defaults_without_config(monkeypatch, tmp_path):
    _clean_env(monkeypatch, tmp_path)
    settings = load_settings()
    assert settings.provider_api_key is None
    assert settings.provider_model == "sonar"
    assert settings.quota_daily_limit == 10
    assert settings.ttl_for("verify_myth") == DAY_SECONDS
    assert settings.ttl_for("game_statement") == 0
    assert settings.ttl_for("track_myth") == 0
    assert settings.cookie_secure is True
    assert settings.admin_token is None


def test_yaml_then_env_overrides(monkeypatch, tmp_path):
    _clean_env(
        monkeypatch,
        tmp_path,
        "provider_model: sonar-pro\n"
        "quota_daily_limit: 20\n"
        "quota_limits:\n  game_question: 50\n"
        "cache_ttl_seconds:\n  verify_myth: 3600\n",
    )
    monkeypatch.setenv("QUOTA_DAILY_LIMIT", "15")
    monkeypatch.setenv("VERIFY_MYTH_TTL_SECONDS", "60")
    monkeypatch.setenv("COOKIE_SECURE", "false")
    settings = load_settings()
    assert settings.provider_model == "sonar-pro"
    assert settings.quota_daily_limit == 15
    assert settings.daily_limit("game_question") == 50
    assert settings.daily_limit("myth_verification") == 15
    assert settings.ttl_for("verify_myth") == 60
    assert settings.cookie_secure is False


def test_missing_config_file_is_fine(monkeypatch, tmp_path):
    _clean_env(monkeypatch, tmp_path)
    monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "absent.yaml"))
    assert load_settings().database_url == "sqlite:///./mythbuster.db"
