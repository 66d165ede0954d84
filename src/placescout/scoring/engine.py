"""
Scoring engine.

`score()` is pure and deterministic. With the default weights:

    quality   = 0.4 * clamp01(rating / 5) + 0.2 * log_scaled(reviews, 500)
    relevance = 0.2 * mood_alignment + category_bonus (0.1) + budget_bonus (0.1)
    combined  = quality + relevance

Scores are computed once per place and pool (against the requested mood and budget,
not a relaxed window), so a relaxed search never changes the score of a place already
seen. `ranking_key` adds the tie-breaks: rating, then review count, then discovery order.
"""

from __future__ import annotations

from placescout.config.settings import ScoringSettings
from placescout.domain.models import AdvertisedPlace, AdvertisedRecord, FilterSet, PlaceCandidate, ScoredPlace
from placescout.preferences import Resolvers
from placescout.scoring.composite import clamp01, log_scaled


def quality_score(candidate: PlaceCandidate, cfg: ScoringSettings) -> float:
    rating = clamp01((candidate.rating or 0.0) / float(cfg.rating_max))
    reviews = log_scaled(candidate.review_count, float(cfg.review_count_reference))
    return cfg.rating_weight * rating + cfg.review_weight * reviews


def _components(
    candidate: PlaceCandidate,
    filters: FilterSet,
    *,
    candidate_mood: float,
    resolvers: Resolvers,
    cfg: ScoringSettings,
) -> dict[str, float]:
    alignment = resolvers.mood.alignment(candidate_mood, filters.mood)
    category_bonus = (
        cfg.category_bonus
        if candidate.types
        and not resolvers.category.preferred_place_types(filters.category).isdisjoint(candidate.types)
        else 0.0
    )
    budget_bonus = 0.0
    if filters.budget is not None and candidate.price_tier is not None:
        if candidate.price_tier in resolvers.budget.band(filters.budget):
            budget_bonus = cfg.budget_bonus

    quality = quality_score(candidate, cfg)
    relevance = cfg.mood_weight * alignment + category_bonus + budget_bonus
    return {
        "mood_score": round(float(candidate_mood), 2),
        "mood_alignment_score": alignment,
        "quality_score": quality,
        "relevance_score": relevance,
        "combined_score": quality + relevance,
    }


def score(
    candidate: PlaceCandidate,
    filters: FilterSet,
    *,
    candidate_mood: float,
    resolvers: Resolvers,
    cfg: ScoringSettings,
) -> ScoredPlace:
    parts = _components(candidate, filters, candidate_mood=candidate_mood, resolvers=resolvers, cfg=cfg)
    return ScoredPlace(**candidate.model_dump(), **parts)


def score_advertised(
    record: AdvertisedRecord,
    filters: FilterSet,
    *,
    candidate_mood: float,
    resolvers: Resolvers,
    cfg: ScoringSettings,
) -> AdvertisedPlace:
    parts = _components(record.place, filters, candidate_mood=candidate_mood, resolvers=resolvers, cfg=cfg)
    return AdvertisedPlace(**record.place.model_dump(), **parts, campaign=record.campaign)


def ranking_key(place: ScoredPlace, discovery_index: int) -> tuple:
    """Sort key (ascending): combined desc, rating desc (missing last), reviews desc, discovery order."""
    rating = place.rating if place.rating is not None else -1.0
    return (-place.combined_score, -rating, -place.review_count, discovery_index)
