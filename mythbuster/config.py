import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv
import yaml

BASE_DIR = Path(__file__).resolve().parents[1]
load_dotenv(dotenv_path=BASE_DIR / ".env.local")
load_dotenv(dotenv_path=BASE_DIR / ".env")

DAY_SECONDS = 24 * 60 * 60

DEFAULT_TTL_SECONDS = {
    "verify_myth": DAY_SECONDS,
    "research_lens": DAY_SECONDS,
    "analyze_source": DAY_SECONDS,
    "synthesize_insights": DAY_SECONDS,
    "track_concepts": DAY_SECONDS,
    "mini_myths": DAY_SECONDS,
    # Gameplay must feel fresh on every play.
    "game_statement": 0,
    "track_myth": 0,
}


def _truthy(value: str | None) -> bool:
    return (value or "").lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    provider_api_key: str | None
    provider_api_url: str
    provider_model: str
    provider_search_context: str
    provider_json_schema: bool
    provider_retries: int
    request_timeout: float
    cache_maxsize: int
    redis_url: str | None
    database_url: str
    quota_daily_limit: int
    quota_limits: dict = field(default_factory=dict)
    cache_ttl_seconds: dict = field(default_factory=lambda: dict(DEFAULT_TTL_SECONDS))
    track_concepts_count: int = 5
    mini_myths_count: int = 5
    admin_token: str | None = None
    cookie_secure: bool = True
    log_level: str = "INFO"

    def daily_limit(self, feature: str) -> int:
        return int(self.quota_limits.get(feature, self.quota_daily_limit))

    def ttl_for(self, kind: str) -> int:
        return int(self.cache_ttl_seconds.get(kind, DAY_SECONDS))


def _load_yaml_config() -> dict:
    config_path = os.getenv("CONFIG_PATH", str(BASE_DIR / "config.yaml"))
    try:
        with open(config_path, "r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}
    except FileNotFoundError:
        return {}


def _ttl_table(cfg: dict) -> dict:
    table = dict(DEFAULT_TTL_SECONDS)
    table.update({k: int(v) for k, v in (cfg.get("cache_ttl_seconds") or {}).items()})
    for kind in table:
        override = os.getenv(f"{kind.upper()}_TTL_SECONDS")
        if override:
            table[kind] = int(override)
    return table


def load_settings() -> Settings:
    cfg = _load_yaml_config()
    return Settings(
        provider_api_key=os.getenv("PROVIDER_API_KEY") or None,
        provider_api_url=os.getenv(
            "PROVIDER_API_URL", cfg.get("provider_api_url") or "https://api.perplexity.ai/chat/completions"
        ),
        provider_model=os.getenv("PROVIDER_MODEL", cfg.get("provider_model") or "sonar"),
        provider_search_context=os.getenv("PROVIDER_SEARCH_CONTEXT", cfg.get("provider_search_context") or "medium"),
        provider_json_schema=_truthy(os.getenv("PROVIDER_JSON_SCHEMA", "true")),
        provider_retries=int(os.getenv("PROVIDER_RETRIES", cfg.get("provider_retries") or 1)),
        request_timeout=float(os.getenv("REQUEST_TIMEOUT", cfg.get("request_timeout") or 30)),
        cache_maxsize=int(os.getenv("CACHE_MAXSIZE", cfg.get("cache_maxsize") or 4096)),
        redis_url=os.getenv("REDIS_URL") or cfg.get("redis_url") or None,
        database_url=os.getenv("DATABASE_URL", cfg.get("database_url") or "sqlite:///./mythbuster.db"),
        quota_daily_limit=int(os.getenv("QUOTA_DAILY_LIMIT", cfg.get("quota_daily_limit") or 10)),
        quota_limits=cfg.get("quota_limits") or {},
        cache_ttl_seconds=_ttl_table(cfg),
        track_concepts_count=int(os.getenv("TRACK_CONCEPTS_COUNT", cfg.get("track_concepts_count") or 5)),
        mini_myths_count=int(os.getenv("MINI_MYTHS_COUNT", cfg.get("mini_myths_count") or 5)),
        admin_token=os.getenv("ADMIN_TOKEN") or None,
        cookie_secure=_truthy(os.getenv("COOKIE_SECURE", "true")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
