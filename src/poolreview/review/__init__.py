"""Change-impact review: closures, attribute inheritance and pad map checks."""

from poolreview.review.attributes import resolve_attributes, resolve_tags
from poolreview.review.closure import (
    compute_closure,
    compute_derivation_closure,
    find_unassociated,
    select_roots,
)
from poolreview.review.pads import validate_pad_mapping

__all__ = [
    "compute_closure",
    "compute_derivation_closure",
    "find_unassociated",
    "resolve_attributes",
    "resolve_tags",
    "select_roots",
    "validate_pad_mapping",
]
