"""Reviewer hints for item attributes."""

from __future__ import annotations

from collections import Counter

from poolreview.exceptions import CyclicDerivationError
from poolreview.graph.query import ItemStore
from poolreview.pool.models import PartAttribute
from poolreview.review.attributes import resolve_attributes

WHITESPACE_WARNING = "(:warning: has trailing/leading whitespace)"


def needs_trim(value: str) -> bool:
    return bool(value) and (value[0].isspace() or value[-1].isspace())


def check_datasheet(url: str, forbidden_domains: list[str]) -> str | None:
    """Return the forbidden distributor domain `url` points to, if any."""
    for domain in forbidden_domains:
        if domain in url:
            return domain
    return None


def value_duplicates_mpn(value: str, mpn: str) -> bool:
    return bool(value) and value == mpn


def manufacturer_counts(store: ItemStore) -> Counter:
    """Number of parts per resolved manufacturer."""
    counts: Counter = Counter()
    for part in store.parts():
        try:
            attrs = resolve_attributes(store, part.uuid)
        except CyclicDerivationError:
            continue
        counts[attrs[PartAttribute.MANUFACTURER].value] += 1
    return counts
