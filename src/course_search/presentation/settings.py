"""
Runtime settings read from the environment.

Only the presentation layer reads ``os.environ``; everything below receives
plain values through the DI container.

Environment Variables:
    OPENAI_API_KEY                  Enables query enhancement, ranking and advice
    OPENAI_BASE_URL                 OpenAI-compatible endpoint (optional)
    COURSE_SEARCH_MODEL             Chat model (default: gpt-3.5-turbo)
    COURSE_SEARCH_DATA_DIR          Analytics persistence directory (default: memory only)
    COURSE_SEARCH_CACHE_TTL         Result cache TTL in seconds (default: 3600)
    COURSE_SEARCH_PROVIDERS         Comma-separated provider names (default: edx,geeksforgeeks,swayam)
    COURSE_SEARCH_CATALOG           YAML file for the static_catalog provider
    COURSE_SEARCH_PROVIDER_TIMEOUT  Per-provider timeout in seconds (default: 20)
    COURSE_SEARCH_ENHANCER_TIMEOUT  Enhancer timeout in seconds (default: 3)
    COURSE_SEARCH_RANKER_TIMEOUT    Ranker timeout in seconds (default: 5)
    COURSE_SEARCH_BURST_LIMIT       Requests per burst window (default: 20)
    COURSE_SEARCH_ANONYMOUS_LIMIT   Anonymous requests per 15 minutes (default: 100)
    COURSE_SEARCH_USER_LIMIT        Authenticated requests per 15 minutes (default: 200)
    COURSE_SEARCH_ANALYTICS_LIMIT   Analytics requests per hour (default: 50)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field

from course_search.shared.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        msg = f"{name} must be a number, got {raw!r}"
        raise ConfigurationError(msg) from e
    if value <= 0:
        msg = f"{name} must be positive, got {raw!r}"
        raise ConfigurationError(msg)
    return value


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    value = _env_float(env, name, default)
    if value != int(value):
        msg = f"{name} must be an integer, got {value!r}"
        raise ConfigurationError(msg)
    return int(value)


@dataclass(frozen=True)
class Settings:
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    model: str = "gpt-3.5-turbo"
    data_dir: str | None = None
    cache_ttl: float = 3600.0
    providers: list[str] = field(default_factory=lambda: ["edx", "geeksforgeeks", "swayam"])
    catalog_path: str | None = None
    provider_timeout: float = 20.0
    enhancer_timeout: float = 3.0
    ranker_timeout: float = 5.0
    burst_limit: int = 20
    anonymous_limit: int = 100
    authenticated_limit: int = 200
    analytics_limit: int = 50

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """
        Read settings from *env* (default: ``os.environ``).

        Raises:
            ConfigurationError: A numeric variable is malformed.
        """
        env = os.environ if env is None else env
        providers = [p.strip() for p in env.get("COURSE_SEARCH_PROVIDERS", "").split(",") if p.strip()]
        return cls(
            openai_api_key=env.get("OPENAI_API_KEY", "").strip() or None,
            openai_base_url=env.get("OPENAI_BASE_URL", "").strip() or None,
            model=env.get("COURSE_SEARCH_MODEL", "").strip() or "gpt-3.5-turbo",
            data_dir=env.get("COURSE_SEARCH_DATA_DIR", "").strip() or None,
            cache_ttl=_env_float(env, "COURSE_SEARCH_CACHE_TTL", 3600.0),
            providers=providers or ["edx", "geeksforgeeks", "swayam"],
            catalog_path=env.get("COURSE_SEARCH_CATALOG", "").strip() or None,
            provider_timeout=_env_float(env, "COURSE_SEARCH_PROVIDER_TIMEOUT", 20.0),
            enhancer_timeout=_env_float(env, "COURSE_SEARCH_ENHANCER_TIMEOUT", 3.0),
            ranker_timeout=_env_float(env, "COURSE_SEARCH_RANKER_TIMEOUT", 5.0),
            burst_limit=_env_int(env, "COURSE_SEARCH_BURST_LIMIT", 20),
            anonymous_limit=_env_int(env, "COURSE_SEARCH_ANONYMOUS_LIMIT", 100),
            authenticated_limit=_env_int(env, "COURSE_SEARCH_USER_LIMIT", 200),
            analytics_limit=_env_int(env, "COURSE_SEARCH_ANALYTICS_LIMIT", 50),
        )

    def to_config(self) -> dict[str, object]:
        """Values for ``ApplicationContainer.config.from_dict``."""
        return asdict(self)

    def describe(self) -> str:
        return (
            f"providers={','.join(self.providers)} "
            f"llm={'on' if self.openai_api_key else 'off'} "
            f"data_dir={self.data_dir or 'memory'} cache_ttl={self.cache_ttl:.0f}s"
        )
