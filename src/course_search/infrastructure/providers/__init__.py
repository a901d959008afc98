"""
Platform Providers

- edx / geeksforgeeks / swayam: scraped HTML search pages (httpx + BeautifulSoup)
- static_catalog: curated YAML dataset

``build_providers`` resolves configured names into instances, in the order
given; that order is the registration order the aggregator concatenates in.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from course_search.shared.exceptions import ConfigurationError

from .base import HtmlCourseProvider
from .edx import EdxProvider
from .geeksforgeeks import GeeksforGeeksProvider
from .static_catalog import StaticCatalogProvider, load_catalog
from .swayam import SwayamProvider

if TYPE_CHECKING:
    from collections.abc import Iterable

    from course_search.domain.ports import PlatformProvider

logger = logging.getLogger(__name__)

HTML_PROVIDERS: dict[str, type[HtmlCourseProvider]] = {
    EdxProvider.name: EdxProvider,
    GeeksforGeeksProvider.name: GeeksforGeeksProvider,
    SwayamProvider.name: SwayamProvider,
}

DEFAULT_PROVIDERS = ("edx", "geeksforgeeks", "swayam")


def build_providers(
    names: Iterable[str],
    *,
    timeout: float = 20.0,
    catalog_path: str | None = None,
) -> list[PlatformProvider]:
    """
    Instantiate providers by name.

    Raises:
        ConfigurationError: Unknown provider name.
    """
    providers: list[PlatformProvider] = []
    for raw_name in names:
        name = raw_name.strip().lower()
        if not name:
            continue
        if name == StaticCatalogProvider.name:
            providers.append(StaticCatalogProvider(catalog_path))
        elif name in HTML_PROVIDERS:
            providers.append(HTML_PROVIDERS[name](timeout=timeout))
        else:
            known = ", ".join([*HTML_PROVIDERS, StaticCatalogProvider.name])
            msg = f"Unknown provider '{raw_name}' (known: {known})"
            raise ConfigurationError(msg)

    logger.info(f"Registered providers: {[p.name for p in providers]}")
    return providers


__all__ = [
    "DEFAULT_PROVIDERS",
    "EdxProvider",
    "GeeksforGeeksProvider",
    "HTML_PROVIDERS",
    "HtmlCourseProvider",
    "StaticCatalogProvider",
    "SwayamProvider",
    "build_providers",
    "load_catalog",
]
