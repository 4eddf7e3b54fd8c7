"""Settings loader: optional YAML file, then environment overrides."""

import copy
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml

from agenda.infrastructure.resilience import (
    CircuitBreakerConfig,
    ResilienceConfig,
    RetryConfig,
)

STORE_MEMORY = "memory"
STORE_NEO4J = "neo4j"
CACHE_MEMORY = "memory"
CACHE_REDIS = "redis"


def _resilience_from_dict(data: dict[str, Any]) -> ResilienceConfig:
    retry = data.get("retry", {})
    breaker = data.get("circuit_breaker", {})
    return ResilienceConfig(
        retry=RetryConfig(
            max_attempts=int(retry.get("max_attempts", 3)),
            base_delay=float(retry.get("base_delay", 0.5)),
            multiplier=float(retry.get("multiplier", 2.0)),
            max_delay=float(retry.get("max_delay", 5.0)),
            jitter=float(retry.get("jitter", 0.5)),
        ),
        breaker=CircuitBreakerConfig(
            window_size=int(breaker.get("window_size", 10)),
            minimum_calls=int(breaker.get("minimum_calls", breaker.get("window_size", 10))),
            failure_rate_threshold=float(breaker.get("failure_rate_threshold", 0.5)),
            open_cooldown=float(breaker.get("open_cooldown", 30.0)),
            half_open_probes=int(breaker.get("half_open_probes", 3)),
        ),
        call_timeout=float(data.get("call_timeout", 5.0)),
    )


@dataclass(frozen=True)
class Settings:
    store_backend: str
    neo4j_uri: str
    neo4j_user: str
    neo4j_password: str
    cache_backend: str
    redis_url: str
    cache_ttl: timedelta
    api_host: str
    api_token: str
    default_page_size: int
    phone_default_region: str | None
    log_level: str
    store_resilience: ResilienceConfig
    upstream_resilience: ResilienceConfig

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        store = data.get("store", {})
        cache = data.get("cache", {})
        api = data.get("kenect_api", {})
        resilience = data.get("resilience", {})
        settings = cls(
            store_backend=str(store.get("backend", STORE_MEMORY)).lower(),
            neo4j_uri=store.get("neo4j_uri", "bolt://localhost:7687"),
            neo4j_user=store.get("neo4j_user", "neo4j"),
            neo4j_password=store.get("neo4j_password", "password"),
            cache_backend=str(cache.get("backend", CACHE_MEMORY)).lower(),
            redis_url=cache.get("redis_url", "redis://localhost:6379/0"),
            cache_ttl=timedelta(seconds=int(cache.get("ttl_seconds", 300))),
            api_host=api.get("host", "http://localhost:8081"),
            api_token=api.get("token", ""),
            default_page_size=int(api.get("default_page_size", 1000)),
            phone_default_region=data.get("phone_default_region") or None,
            log_level=str(data.get("log_level", "INFO")).upper(),
            store_resilience=_resilience_from_dict(resilience.get("store", {})),
            upstream_resilience=_resilience_from_dict(resilience.get("upstream", {})),
        )
        if settings.store_backend not in (STORE_MEMORY, STORE_NEO4J):
            raise ValueError(f"Unknown store backend: {settings.store_backend}")
        if settings.cache_backend not in (CACHE_MEMORY, CACHE_REDIS):
            raise ValueError(f"Unknown cache backend: {settings.cache_backend}")
        return settings


ENV_MAP = {
    "store.backend": "STORE_BACKEND",
    "store.neo4j_uri": "NEO4J_URI",
    "store.neo4j_user": "NEO4J_USER",
    "store.neo4j_password": "NEO4J_PASSWORD",
    "cache.backend": "CACHE_BACKEND",
    "cache.redis_url": "REDIS_URL",
    "cache.ttl_seconds": "CACHE_TTL_SECONDS",
    "kenect_api.host": "KENECT_API_HOST",
    "kenect_api.token": "KENECT_API_TOKEN",
    "kenect_api.default_page_size": "KENECT_API_DEFAULT_PAGE_SIZE",
    "phone_default_region": "PHONE_DEFAULT_REGION",
    "log_level": "LOG_LEVEL",
    "resilience.store.retry.max_attempts": "STORE_RETRY_MAX_ATTEMPTS",
    "resilience.store.circuit_breaker.failure_rate_threshold": "STORE_CB_FAILURE_RATE",
    "resilience.store.circuit_breaker.open_cooldown": "STORE_CB_OPEN_COOLDOWN",
    "resilience.store.call_timeout": "STORE_CALL_TIMEOUT",
    "resilience.upstream.retry.max_attempts": "UPSTREAM_RETRY_MAX_ATTEMPTS",
    "resilience.upstream.circuit_breaker.failure_rate_threshold": "UPSTREAM_CB_FAILURE_RATE",
    "resilience.upstream.circuit_breaker.open_cooldown": "UPSTREAM_CB_OPEN_COOLDOWN",
    "resilience.upstream.call_timeout": "UPSTREAM_CALL_TIMEOUT",
}


def load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def merge_env_overrides(config_data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of config_data with ENV_MAP variables applied. Values stay strings; from_dict casts."""
    merged = copy.deepcopy(config_data)
    for dotted_key, env_name in ENV_MAP.items():
        value = os.environ.get(env_name)
        if value is None or value.strip() == "":
            continue
        target = merged
        parts = dotted_key.split(".")
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        target[parts[-1]] = value.strip()
    return merged


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from config_path (or $AGENDA_CONFIG) plus environment overrides.

    With neither given, defaults plus environment are used.
    """
    if config_path is None:
        config_path = os.environ.get("AGENDA_CONFIG", "").strip() or None
    data: dict[str, Any] = {}
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        data = load_yaml(path)
    return Settings.from_dict(merge_env_overrides(data))
