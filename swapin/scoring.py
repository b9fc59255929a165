"""Keyword relevance and popularity ranking for item search."""

from typing import Iterable, List, Optional, Sequence

from .models import Item

TITLE_WEIGHT = 3
DESCRIPTION_WEIGHT = 2
CATEGORY_WEIGHT = 2
TAG_WEIGHT = 1

CONDITION_BONUS = {
    "new": 10,
    "like-new": 8,
    "good": 5,
}


def keywords(query: Optional[str]) -> List[str]:
    """Lower-cased query words longer than two characters."""
    if not query:
        return []
    return [word for word in query.lower().split() if len(word) > 2]


def relevance_score(item: Item, words: Sequence[str]) -> int:
    title = (item.title or "").lower()
    description = (item.description or "").lower()
    category = (item.category or "").lower()
    tags = [tag.lower() for tag in item.tags or []]

    score = 0
    for word in words:
        if word in title:
            score += TITLE_WEIGHT
        if word in description:
            score += DESCRIPTION_WEIGHT
        if word in category:
            score += CATEGORY_WEIGHT
        if any(word in tag for tag in tags):
            score += TAG_WEIGHT
    return score


def popularity_score(item: Item) -> float:
    score = (item.views or 0) * 0.1
    score += (item.likes or 0) * 0.5
    score += (item.offers or 0) * 0.3
    score += CONDITION_BONUS.get(item.condition, 0)
    return score


def rank_by_popularity(items: Iterable[Item]) -> List[Item]:
    return sorted(items, key=popularity_score, reverse=True)


def text_search(items: Iterable[Item], query: str) -> List[Item]:
    """
    Keep items matching at least one keyword, most popular first. Relevance
    decides between equally popular items.
    """
    words = keywords(query)
    scored = [(item, relevance_score(item, words)) for item in items]
    matched = [(item, score) for item, score in scored if score > 0]
    matched.sort(key=lambda pair: (popularity_score(pair[0]), pair[1]), reverse=True)
    return [item for item, _ in matched]
