"""Aspect significance scoring and selection."""

from .aspects import (
    find_best_aspect,
    find_synastry_key_aspect,
    format_aspect,
    headline_aspect,
    rank_aspects,
    score_aspect,
)

__all__ = [
    "score_aspect",
    "find_best_aspect",
    "find_synastry_key_aspect",
    "rank_aspects",
    "headline_aspect",
    "format_aspect",
]
