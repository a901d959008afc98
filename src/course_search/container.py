"""
Application DI Container (dependency-injector).

Centralizes service creation and lifecycle management. Collaborators are
long-lived singletons; per-request state never lives on them.

Usage::

    from course_search.container import ApplicationContainer

    container = ApplicationContainer()
    container.config.from_dict({
        "openai_api_key": None,
        "data_dir": "~/.course-search",
        "providers": ["edx", "geeksforgeeks", "swayam"],
    })

    service = container.search_service()
    limiter = container.rate_limiter()

    # In tests, override any provider:
    container.platform_providers.override(providers.Object([fake_provider]))
"""

from __future__ import annotations

import logging
from typing import Any

from dependency_injector import containers, providers

logger = logging.getLogger(__name__)

DEFAULTS: dict[str, Any] = {
    "openai_api_key": None,
    "openai_base_url": None,
    "model": "gpt-3.5-turbo",
    "data_dir": None,
    "cache_ttl": 3600.0,
    "cache_max_size": 1024,
    "providers": ["edx", "geeksforgeeks", "swayam"],
    "catalog_path": None,
    "provider_timeout": 20.0,
    "enhancer_timeout": 3.0,
    "ranker_timeout": 5.0,
    "advisor_timeout": 15.0,
    "burst_limit": 20,
    "burst_window": 60.0,
    "anonymous_limit": 100,
    "authenticated_limit": 200,
    "sustained_window": 900.0,
    "analytics_limit": 50,
    "analytics_window": 3600.0,
}


def _create_openai_client(api_key: str | None, base_url: str | None, timeout: float) -> object | None:
    """Shared AsyncOpenAI client, or None when no key is configured."""
    if not api_key:
        logger.info("OPENAI_API_KEY not set: query enhancement and ranking disabled")
        return None
    from course_search.infrastructure.llm import create_openai_client

    return create_openai_client(api_key, base_url=base_url, timeout=timeout)


def _create_enhancer(client: Any, model: str) -> object | None:
    if client is None:
        return None
    from course_search.infrastructure.llm import OpenAIQueryEnhancer

    return OpenAIQueryEnhancer(client, model)


def _create_ranker(client: Any, model: str) -> object | None:
    if client is None:
        return None
    from course_search.infrastructure.llm import OpenAIRelevanceRanker

    return OpenAIRelevanceRanker(client, model)


def _create_advisor(client: Any, model: str) -> object | None:
    if client is None:
        return None
    from course_search.infrastructure.llm import OpenAICourseAdvisor

    return OpenAICourseAdvisor(client, model)


def _create_platform_providers(names: list[str], timeout: float, catalog_path: str | None) -> list[Any]:
    from course_search.infrastructure.providers import build_providers

    return build_providers(names, timeout=timeout, catalog_path=catalog_path)


def _create_result_cache(ttl: float, max_size: int) -> object:
    from course_search.infrastructure.cache import ResultCache

    return ResultCache(ttl=ttl, max_size=max_size)


def _create_analytics(data_dir: str | None) -> object:
    from course_search.infrastructure.analytics import SearchAnalyticsStore

    return SearchAnalyticsStore(data_dir=data_dir)


def _create_listing_catalog() -> object:
    from course_search.infrastructure.persistence import InMemoryListingCatalog

    return InMemoryListingCatalog()


def _create_aggregator(
    platform_providers: list[Any],
    cache: Any,
    analytics: Any,
    enhancer: Any,
    ranker: Any,
    enhancer_timeout: float,
    ranker_timeout: float,
    provider_timeout: float,
) -> object:
    from course_search.application.search import AggregatorTimeouts, SearchAggregator

    return SearchAggregator(
        platform_providers,
        cache,
        analytics,
        enhancer=enhancer,
        ranker=ranker,
        timeouts=AggregatorTimeouts(enhancer=enhancer_timeout, ranker=ranker_timeout, provider=provider_timeout),
    )


def _create_search_service(aggregator: Any, analytics: Any, catalog: Any, advisor: Any) -> object:
    from course_search.application.search import CourseSearchService

    return CourseSearchService(aggregator, analytics, catalog, advisor=advisor)


def _create_rate_limiter(
    burst_limit: int,
    burst_window: float,
    anonymous_limit: int,
    authenticated_limit: int,
    sustained_window: float,
    analytics_limit: int,
    analytics_window: float,
) -> object:
    from course_search.infrastructure.ratelimit import RateLimitConfig, RateWindow, SearchRateLimiter

    return SearchRateLimiter(
        RateLimitConfig(
            burst=RateWindow("burst", burst_limit, burst_window),
            anonymous=RateWindow("sustained", anonymous_limit, sustained_window),
            authenticated=RateWindow("sustained", authenticated_limit, sustained_window),
            analytics=RateWindow("analytics", analytics_limit, analytics_window),
        )
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Central DI container for the Course Search application.

    Manages creation and lifecycle of all core services:
    - ``platform_providers``: registered content sources, in registration order
    - ``query_enhancer`` / ``relevance_ranker`` / ``course_advisor``: OpenAI collaborators (None without a key)
    - ``result_cache``, ``analytics``, ``listing_catalog``: state stores
    - ``aggregator`` and ``search_service``: application layer
    - ``rate_limiter``: per-caller request windows
    """

    config = providers.Configuration(default=DEFAULTS)

    openai_client = providers.Singleton(
        _create_openai_client,
        api_key=config.openai_api_key,
        base_url=config.openai_base_url,
        timeout=config.advisor_timeout,
    )

    query_enhancer = providers.Singleton(_create_enhancer, client=openai_client, model=config.model)
    relevance_ranker = providers.Singleton(_create_ranker, client=openai_client, model=config.model)
    course_advisor = providers.Singleton(_create_advisor, client=openai_client, model=config.model)

    platform_providers = providers.Singleton(
        _create_platform_providers,
        names=config.providers,
        timeout=config.provider_timeout,
        catalog_path=config.catalog_path,
    )

    result_cache = providers.Singleton(
        _create_result_cache,
        ttl=config.cache_ttl,
        max_size=config.cache_max_size,
    )

    analytics = providers.Singleton(_create_analytics, data_dir=config.data_dir)

    listing_catalog = providers.Singleton(_create_listing_catalog)

    aggregator = providers.Singleton(
        _create_aggregator,
        platform_providers=platform_providers,
        cache=result_cache,
        analytics=analytics,
        enhancer=query_enhancer,
        ranker=relevance_ranker,
        enhancer_timeout=config.enhancer_timeout,
        ranker_timeout=config.ranker_timeout,
        provider_timeout=config.provider_timeout,
    )

    search_service = providers.Singleton(
        _create_search_service,
        aggregator=aggregator,
        analytics=analytics,
        catalog=listing_catalog,
        advisor=course_advisor,
    )

    rate_limiter = providers.Singleton(
        _create_rate_limiter,
        burst_limit=config.burst_limit,
        burst_window=config.burst_window,
        anonymous_limit=config.anonymous_limit,
        authenticated_limit=config.authenticated_limit,
        sustained_window=config.sustained_window,
        analytics_limit=config.analytics_limit,
        analytics_window=config.analytics_window,
    )


async def close_container(container: ApplicationContainer) -> None:
    """Release provider HTTP clients and the OpenAI client; one failure does not stop the rest."""
    for provider in container.platform_providers():
        close = getattr(provider, "close", None)
        if close is None:
            continue
        try:
            await close()
        except Exception as e:
            logger.warning(f"Failed to close provider {getattr(provider, 'name', provider)}: {e}")
    client = container.openai_client()
    if client is not None:
        try:
            await client.close()
        except Exception as e:
            logger.warning(f"Failed to close OpenAI client: {e}")
    logger.info("Lifecycle: shutdown, provider and LLM clients closed")


__all__ = ["DEFAULTS", "ApplicationContainer", "close_container"]
