"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- canonical user intent (`FilterSet`), produced only by the normalizer
- upstream results (`PlaceCandidate`) and their scored form (`ScoredPlace`, `AdvertisedPlace`)
- the value returned to callers (`DiscoveryResult`)

Raw, loosely-typed filter payloads never reach scoring: the normalizer turns them into a
frozen `FilterSet` first.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Category = Literal["food", "activity", "something-new"]
SocialContext = Literal["solo", "paired", "group"]
Budget = Literal["low", "mid", "high"]
TimeOfDay = Literal["morning", "afternoon", "night", "any"]
Dimension = Literal["category", "mood", "social_context", "budget", "time_of_day"]
RelaxableDimension = Literal["time_of_day", "social_context", "mood", "budget"]


class LoadingState(str, Enum):
    """Radius controller states; the last three are terminal."""

    INITIAL = "INITIAL"
    SEARCHING = "SEARCHING"
    EXPANDING = "EXPANDING"
    COMPLETE = "COMPLETE"
    LIMIT_REACHED = "LIMIT_REACHED"
    ERROR = "ERROR"

    @property
    def is_terminal(self) -> bool:
        return self in (LoadingState.COMPLETE, LoadingState.LIMIT_REACHED, LoadingState.ERROR)


class GeoPoint(BaseModel):
    """A geographic point in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class FilterSet(BaseModel):
    """Canonical filter set. Build it with `placescout.discovery.normalizer.normalize`."""

    model_config = ConfigDict(frozen=True)

    category: Category
    mood: int = Field(..., ge=0, le=100)
    social_context: SocialContext | None = None
    budget: Budget | None = None
    time_of_day: TimeOfDay | None = None
    distance_range: int = Field(..., ge=0, le=100)
    origin: GeoPoint
    signature: str


class FilterWarning(BaseModel):
    """A non-fatal normalization note (clamped value, dropped enum, odd combination)."""

    model_config = ConfigDict(frozen=True)

    code: Literal["clamped", "defaulted", "dropped", "incompatible"]
    field: str
    message: str


def _normalize_types(types: list[str]) -> list[str]:
    return sorted({t.strip().lower() for t in types if t and t.strip()})


class PlaceCandidate(BaseModel):
    """Raw result from a place-search capability (immutable)."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    location: GeoPoint
    types: list[str] = Field(default_factory=list)
    rating: float | None = Field(default=None, ge=0, le=5)
    review_count: int = Field(default=0, ge=0)
    price_tier: int | None = Field(default=None, ge=0, le=4)
    open_now: bool | None = None
    review_snippets: list[str] = Field(default_factory=list)
    address: str | None = None

    @field_validator("types")
    @classmethod
    def _normalize_types(cls, types: list[str]) -> list[str]:
        return _normalize_types(types)


class ScoredPlace(PlaceCandidate):
    """A candidate plus its scores. Computed once per pool entry."""

    mood_score: float = Field(..., ge=0, le=100)
    relevance_score: float
    quality_score: float
    mood_alignment_score: float = Field(..., ge=0, le=1)
    combined_score: float
    is_advertised: bool = False


class CampaignInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    campaign_id: str
    sponsor: str | None = None
    label: str = "Sponsored"


class AdvertisedRecord(BaseModel):
    """One operator-curated advertised entry, as stored in the advertised catalog."""

    model_config = ConfigDict(frozen=True)

    place: PlaceCandidate
    categories: list[Category] = Field(default_factory=lambda: ["food", "activity", "something-new"])
    campaign: CampaignInfo


class AdvertisedPlace(ScoredPlace):
    is_advertised: Literal[True] = True
    campaign: CampaignInfo


class SearchEvent(BaseModel):
    """One radius-controller transition (state, radius, expansion count, yield)."""

    model_config = ConfigDict(frozen=True)

    state: LoadingState
    radius_m: float
    expansion_count: int
    yield_count: int
    relaxed_filters: list[RelaxableDimension] = Field(default_factory=list)
    note: str | None = None


class ExpansionInfo(BaseModel):
    radius_m: float
    expansion_count: int
    filters_relaxed: bool = False
    relaxed_filters: list[RelaxableDimension] = Field(default_factory=list)
    events: list[SearchEvent] = Field(default_factory=list)


class PoolInfo(BaseModel):
    remaining: int
    returned: int
    total_seen: int
    needs_refresh: bool


class DiscoveryResult(BaseModel):
    """What `discover()` / `get_next_batch()` hand back to callers."""

    signature: str
    places: list[AdvertisedPlace | ScoredPlace] = Field(default_factory=list)
    loading_state: LoadingState
    expansion: ExpansionInfo
    pool: PoolInfo
    warnings: list[FilterWarning] = Field(default_factory=list)
    error: str | None = None
