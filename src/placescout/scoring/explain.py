"""
Small explainability formatting helpers.

Used by the CLI to print compact summaries of discovered places.
"""

from __future__ import annotations

from placescout.domain.models import AdvertisedPlace, ScoredPlace


def one_line_summary(place: ScoredPlace) -> str:
    """Render a compact single-line summary for a scored place."""
    parts = [
        f"combined={place.combined_score:.3f}",
        f"quality={place.quality_score:.3f}",
        f"relevance={place.relevance_score:.3f}",
        f"mood={place.mood_score:.0f} (align={place.mood_alignment_score:.2f})",
    ]
    if place.rating is not None:
        parts.append(f"rating={place.rating:.1f} ({place.review_count})")
    if place.price_tier is not None:
        parts.append("price=" + "$" * max(1, place.price_tier))
    if isinstance(place, AdvertisedPlace):
        parts.append(f"{place.campaign.label.lower()}:{place.campaign.campaign_id}")
    return " | ".join(parts)
