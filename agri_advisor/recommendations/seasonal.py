"""
Seasonal recommender: static crop and activity advice per season.

A pure function of the season tag.  With no season it returns nothing; with
a season it always returns exactly two items (one ``crop``, one ``business``).
"""

from __future__ import annotations

from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Optional

from agri_advisor.models.recommendation import RecommendationItem
from agri_advisor.taxonomy.recommendation_taxonomy import (
    RecommendationSource,
    RecommendationType,
    Season,
)

SEASONAL_CONFIDENCE = 0.70

SEASONAL_CROPS: Mapping[Season, tuple[str, ...]] = MappingProxyType({
    Season.SPRING: ("Corn", "Soybeans", "Rice", "Cotton", "Vegetables"),
    Season.SUMMER: ("Sunflower", "Sorghum", "Millet", "Vegetables", "Fruits"),
    Season.FALL:   ("Winter Wheat", "Barley", "Rapeseed", "Root vegetables"),
    Season.WINTER: ("Planning", "Equipment maintenance", "Soil preparation"),
})

SEASONAL_ACTIVITIES: Mapping[Season, tuple[str, ...]] = MappingProxyType({
    Season.SPRING: ("Planting", "Soil preparation", "Fertilizing", "Pest management planning"),
    Season.SUMMER: ("Irrigation management", "Pest control", "Crop monitoring",
                    "Early harvest planning"),
    Season.FALL:   ("Harvesting", "Storage preparation", "Market research",
                    "Winter crop planting"),
    Season.WINTER: ("Equipment maintenance", "Financial planning", "Education",
                    "Crop planning"),
})


def seasonal_recommendations(
    season:     Optional[Season],
    created_at: datetime,
) -> list[RecommendationItem]:
    """Return the crop and activity items for ``season`` (empty when ``None``)."""
    if season is None:
        return []

    label = season.value.capitalize()
    crops = SEASONAL_CROPS[season]
    activities = SEASONAL_ACTIVITIES[season]

    return [
        RecommendationItem(
            id=f"seasonal-crop-{season.value}",
            type=RecommendationType.CROP,
            title=f"{label} Crop Recommendations",
            description=(
                f"Consider focusing on these crops this {season.value}: "
                f"{', '.join(crops)}."
            ),
            confidence=SEASONAL_CONFIDENCE,
            data={"season": season.value, "recommended_crops": list(crops)},
            source=RecommendationSource.SEASONAL,
            created_at=created_at,
        ),
        RecommendationItem(
            id=f"seasonal-activity-{season.value}",
            type=RecommendationType.BUSINESS,
            title=f"{label} Activity Focus",
            description=(
                f"Key activities for this {season.value}: {', '.join(activities)}."
            ),
            confidence=SEASONAL_CONFIDENCE,
            data={"season": season.value, "recommended_activities": list(activities)},
            source=RecommendationSource.SEASONAL,
            created_at=created_at,
        ),
    ]
