"""Default wiring: settings -> orchestrator with the configured adapters."""

from __future__ import annotations

from placescout.config.settings import Settings
from placescout.core.cache import FileResultCache
from placescout.core.env import resolve_project_path
from placescout.discovery.orchestrator import DiscoveryOrchestrator
from placescout.ingestion.advertised import StaticAdvertisedSource
from placescout.ingestion.capabilities import PlaceSearch
from placescout.ingestion.mood_analysis import KeywordMoodAnalyzer
from placescout.ingestion.place_search import CatalogPlaceSearch, HttpPlaceSearch


def build_place_search(settings: Settings) -> PlaceSearch:
    """HTTP service when `place_search.base_url` is set, otherwise the offline catalog."""
    if settings.place_search.base_url:
        return HttpPlaceSearch(settings)
    return CatalogPlaceSearch.from_settings(settings)


def build_cache(settings: Settings) -> FileResultCache | None:
    if not settings.cache.enabled:
        return None
    return FileResultCache(
        resolve_project_path(settings.cache.dir), ttl_seconds=settings.cache.default_ttl_seconds
    )


def build_orchestrator(settings: Settings, *, ads: bool = True) -> DiscoveryOrchestrator:
    return DiscoveryOrchestrator(
        settings,
        build_place_search(settings),
        mood_analyzer=KeywordMoodAnalyzer(),
        advertised=StaticAdvertisedSource.from_settings(settings) if ads else None,
        cache=build_cache(settings),
    )
