"""
API routes.

Endpoints:
- POST `/api/discover`: first batch for a raw filter payload.
- POST `/api/discover/next`: next batch from the same pool ("show me more").
- POST `/api/discover/reset`: drop the pool for a filter payload.
- GET  `/api/settings`: public discovery settings (secrets redacted).

Filter payloads are accepted as loose JSON objects (camelCase or snake_case); the
normalizer owns validation. `ERROR` outcomes are returned as 200 with
`loading_state="ERROR"` so clients can tell "search failed" from "fewer results".
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from fastapi import APIRouter, Body, HTTPException

from placescout.config.settings import get_settings
from placescout.core.errors import InvalidOrigin
from placescout.discovery.factory import build_orchestrator
from placescout.discovery.orchestrator import DiscoveryOrchestrator
from placescout.domain.models import DiscoveryResult

logger = logging.getLogger(__name__)

router = APIRouter()


@lru_cache
def _orchestrator() -> DiscoveryOrchestrator:
    """One process-wide orchestrator (and therefore one pool manager)."""
    return build_orchestrator(get_settings())


def _bad_request(exc: ValueError) -> HTTPException:
    code = "INVALID_ORIGIN" if isinstance(exc, InvalidOrigin) else "VALIDATION_ERROR"
    return HTTPException(status_code=400, detail={"code": code, "message": str(exc)})


def _internal_error(exc: Exception) -> HTTPException:
    logger.exception("Discovery request failed")
    return HTTPException(status_code=500, detail={"code": "INTERNAL_ERROR", "message": str(exc)})


@router.post("/api/discover", response_model=DiscoveryResult)
async def post_discover(filters: dict[str, Any] = Body(...)) -> DiscoveryResult:
    """Run discovery for a filter payload and return the first batch."""
    try:
        return await _orchestrator().discover(filters)
    except ValueError as e:
        raise _bad_request(e) from e
    except Exception as e:
        raise _internal_error(e) from e


@router.post("/api/discover/next", response_model=DiscoveryResult)
async def post_discover_next(filters: dict[str, Any] = Body(...)) -> DiscoveryResult:
    """Return the next batch for the same filters (searches again only when the pool is short)."""
    try:
        return await _orchestrator().get_next_batch(filters)
    except ValueError as e:
        raise _bad_request(e) from e
    except Exception as e:
        raise _internal_error(e) from e


@router.post("/api/discover/reset")
def post_discover_reset(filters: dict[str, Any] = Body(...)) -> dict:
    try:
        existed = _orchestrator().reset(filters)
    except ValueError as e:
        raise _bad_request(e) from e
    return {"reset": existed}


@router.get("/api/settings")
def get_public_settings() -> dict:
    """Return public discovery settings (no credentials)."""
    settings = get_settings()
    return {
        "app": {"name": settings.app.name},
        "place_search": {
            "provider": "http" if settings.place_search.base_url else "catalog",
            "max_results": settings.place_search.max_results,
        },
        "discovery": settings.discovery.model_dump(mode="json", exclude={"retry"}),
        "preferences": settings.preferences.model_dump(mode="json"),
        "scoring": settings.scoring.model_dump(mode="json"),
    }
