"""
Chat-insight extractor: keyword buckets over recent assistant messages.

Only the ten most recent assistant messages are scanned.  For every keyword
of ``KEYWORD_CATEGORIES`` found (case-insensitively) in a message, the first
sentence of that message containing the keyword is recorded in the keyword's
category bucket.  Sentences are split on runs of ``.``, ``!`` and ``?``.

After all messages are scanned, each non-empty category yields exactly one
item whose description is the *first* sentence recorded for it, i.e. the
earliest match found while walking messages newest-first and keywords in
table order.  All sentences are kept in ``data["related_sentences"]``.

Chat-derived items carry a flat 0.60 confidence, below every analysis rule.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from datetime import datetime
from types import MappingProxyType
from typing import Mapping

from agri_advisor.models.chat import ChatMessage
from agri_advisor.models.recommendation import RecommendationItem
from agri_advisor.recommendations.ids import content_id
from agri_advisor.recommendations.recency import most_recent
from agri_advisor.taxonomy.recommendation_taxonomy import (
    InsightCategory,
    RecommendationSource,
    RecommendationType,
)

logger = logging.getLogger(__name__)

CHAT_CONFIDENCE = 0.60

KEYWORD_CATEGORIES: Mapping[str, InsightCategory] = MappingProxyType({
    "increase":   InsightCategory.GROWTH,
    "expand":     InsightCategory.GROWTH,
    "grow":       InsightCategory.GROWTH,
    "profit":     InsightCategory.PROFIT,
    "revenue":    InsightCategory.PROFIT,
    "cost":       InsightCategory.COST,
    "expense":    InsightCategory.COST,
    "save":       InsightCategory.COST,
    "risk":       InsightCategory.RISK,
    "market":     InsightCategory.MARKET,
    "demand":     InsightCategory.MARKET,
    "customer":   InsightCategory.MARKET,
    "season":     InsightCategory.SEASONAL,
    "weather":    InsightCategory.SEASONAL,
    "climate":    InsightCategory.SEASONAL,
    "resource":   InsightCategory.RESOURCE,
    "water":      InsightCategory.RESOURCE,
    "soil":       InsightCategory.RESOURCE,
    "fertilizer": InsightCategory.RESOURCE,
    "pest":       InsightCategory.RESOURCE,
    "equipment":  InsightCategory.RESOURCE,
})

CATEGORY_TITLES: Mapping[InsightCategory, str] = MappingProxyType({
    InsightCategory.GROWTH:   "Growth Opportunity",
    InsightCategory.PROFIT:   "Profit Enhancement",
    InsightCategory.COST:     "Cost Saving Opportunity",
    InsightCategory.RISK:     "Risk Management",
    InsightCategory.MARKET:   "Market Intelligence",
    InsightCategory.SEASONAL: "Seasonal Planning",
    InsightCategory.RESOURCE: "Resource Optimization",
})

CATEGORY_TYPES: Mapping[InsightCategory, RecommendationType] = MappingProxyType({
    InsightCategory.GROWTH:   RecommendationType.BUSINESS,
    InsightCategory.PROFIT:   RecommendationType.BUSINESS,
    InsightCategory.COST:     RecommendationType.RESOURCE,
    InsightCategory.RISK:     RecommendationType.BUSINESS,
    InsightCategory.MARKET:   RecommendationType.MARKET,
    InsightCategory.SEASONAL: RecommendationType.MARKET,
    InsightCategory.RESOURCE: RecommendationType.RESOURCE,
})

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


def split_sentences(content: str) -> list[str]:
    """Split text on runs of sentence-ending punctuation (pieces are not trimmed)."""
    return _SENTENCE_SPLIT.split(content)


def first_sentence_with(content: str, keyword: str) -> str | None:
    """Return the first trimmed sentence of ``content`` containing ``keyword``.

    Matching is case-insensitive; ``keyword`` must already be lower-case.
    """
    for sentence in split_sentences(content):
        if keyword in sentence.lower():
            trimmed = sentence.strip()
            if trimmed:
                return trimmed
    return None


def extract_chat_insights(
    messages:   Sequence[ChatMessage],
    created_at: datetime,
    limit:      int = 10,
) -> list[RecommendationItem]:
    """Bucket keyword sentences from recent assistant messages into insight items.

    Args:
        messages:   Full chat history; user messages are ignored.
        created_at: Run timestamp stamped on every emitted item.
        limit:      Max assistant messages scanned (most recent first).

    Returns:
        At most one item per ``InsightCategory``, in category declaration order.
    """
    assistant = [m for m in messages if m.is_assistant]
    recent = most_recent(assistant, limit)

    sentences: dict[InsightCategory, list[str]] = {c: [] for c in InsightCategory}
    message_ids: dict[InsightCategory, list[str]] = {c: [] for c in InsightCategory}

    for message in recent:
        lowered = message.content.lower()
        for keyword, category in KEYWORD_CATEGORIES.items():
            if keyword not in lowered:
                continue
            sentence = first_sentence_with(message.content, keyword)
            if sentence is None:
                continue
            sentences[category].append(sentence)
            if message.id not in message_ids[category]:
                message_ids[category].append(message.id)

    items: list[RecommendationItem] = []
    for category in InsightCategory:
        found = sentences[category]
        if not found:
            continue
        items.append(
            RecommendationItem(
                id=content_id(f"chat-{category.value}", *message_ids[category]),
                type=CATEGORY_TYPES[category],
                title=CATEGORY_TITLES[category],
                description=found[0],
                confidence=CHAT_CONFIDENCE,
                data={
                    "category":          category.value,
                    "related_sentences": list(found),
                    "message_ids":       list(message_ids[category]),
                },
                source=RecommendationSource.CHAT,
                created_at=created_at,
            )
        )

    logger.debug(
        "Chat extractor: %d insight(s) from %d assistant message(s).",
        len(items), len(recent),
    )
    return items
