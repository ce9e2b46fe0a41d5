"""
Aspect significance scoring.

Ranks aspects by classical significance: major aspects over minor ones,
luminaries and angles over personal planets, personal planets over slow
ones, and tighter orbs over wider ones. Pure functions only.
"""

import math
from typing import Callable, Iterable, Optional, Sequence

from ..data.models import Aspect, TransitDayData

# Planet categories by speed and personal significance
PLANET_TIERS = {
    "LUMINARIES": ("Sun", "Moon"),
    "PERSONAL": ("Mercury", "Venus", "Mars"),
    "SOCIAL": ("Jupiter", "Saturn"),
    "OUTER": ("Uranus", "Neptune", "Pluto"),
    "ANGLES": ("Ascendant", "Midheaven", "Descendant", "Imum Coeli", "Medium Coeli"),
}

PLANET_PRIORITY = {
    # Luminaries
    "Sun": 100,
    "Moon": 95,
    # Angles
    "Ascendant": 90,
    "Midheaven": 85,
    "Medium_Coeli": 85,
    "Descendant": 80,
    "Imum_Coeli": 75,
    # Personal planets
    "Mercury": 70,
    "Venus": 70,
    "Mars": 70,
    # Social planets
    "Jupiter": 40,
    "Saturn": 40,
    # Outer planets
    "Uranus": 20,
    "Neptune": 20,
    "Pluto": 20,
    # Minor bodies
    "Chiron": 15,
    "True_North_Lunar_Node": 10,
    "Mean_North_Lunar_Node": 10,
    "True_Lilith": 5,
    "Mean_Lilith": 5,
}
DEFAULT_PLANET_PRIORITY = 10

MAJOR_ASPECTS = ("conjunction", "opposition", "trine", "square", "sextile")

ASPECT_PRIORITY = {
    # Major (Ptolemaic)
    "conjunction": 100,
    "opposition": 90,
    "square": 85,
    "trine": 80,
    "sextile": 70,
    # Minor
    "quincunx": 30,
    "semisquare": 20,
    "sesquiquadrate": 20,
    "semisextile": 15,
    "quintile": 10,
    "biquintile": 10,
}
DEFAULT_ASPECT_PRIORITY = 10

SLOW_PAIR_PENALTY = 0.3
MINOR_ASPECT_FACTOR = 0.4
ANGLE_PENALTY = 0.2
ANGLE_TIGHT_ORB = 2.0
NODE_PENALTY = 0.3
MIN_ORB_FACTOR = 0.5
ORB_FACTOR_SPAN = 20.0

DEFAULT_MAX_ORB = 10.0
KEY_ASPECT_TIGHT_ORB = 5.0


def normalize_point_name(name: str) -> str:
    """``Imum_Coeli``, ``imum-coeli`` and ``Imum Coeli`` all compare equal."""
    return " ".join(name.replace("_", " ").replace("-", " ").split()).lower()


_PRIORITY_BY_NAME = {normalize_point_name(k): v for k, v in PLANET_PRIORITY.items()}
_SLOW_POINTS = {normalize_point_name(p) for p in PLANET_TIERS["SOCIAL"] + PLANET_TIERS["OUTER"]}
_ANGLES = {normalize_point_name(p) for p in PLANET_TIERS["ANGLES"]}
_LUMINARIES = {normalize_point_name(p) for p in PLANET_TIERS["LUMINARIES"]}


def planet_priority(name: str) -> int:
    return _PRIORITY_BY_NAME.get(normalize_point_name(name), DEFAULT_PLANET_PRIORITY)


def aspect_priority(kind: str) -> int:
    return ASPECT_PRIORITY.get(kind.lower(), DEFAULT_ASPECT_PRIORITY)


def is_slow_point(name: str) -> bool:
    return normalize_point_name(name) in _SLOW_POINTS


def is_angle(name: str) -> bool:
    return normalize_point_name(name) in _ANGLES


def is_luminary(name: str) -> bool:
    return normalize_point_name(name) in _LUMINARIES


def is_lunar_node(name: str) -> bool:
    return "node" in name.lower()


def score_aspect(aspect: Aspect) -> float:
    """
    Composite significance score; higher is more significant.

    The pair score is the geometric mean of both point priorities, so one
    important point paired with an obscure one still scores moderately.
    It is multiplied by the aspect kind weight and by these factors:

    * 0.3 when both points are social or outer planets
    * 0.4 for minor aspects
    * 0.2 when an angle is involved and the orb exceeds 2 degrees
    * max(0.5, 1 - |orb| / 20) for orb tightness
    * 0.3 when either point is a lunar node

    Args:
        aspect: Aspect to score

    Returns:
        Non-negative score
    """
    pair_score = math.sqrt(planet_priority(aspect.p1_name) * planet_priority(aspect.p2_name))
    kind_weight = aspect_priority(aspect.aspect)
    orb = abs(aspect.orbit)

    slow_penalty = SLOW_PAIR_PENALTY if is_slow_point(aspect.p1_name) and is_slow_point(aspect.p2_name) else 1.0
    kind_factor = 1.0 if aspect.aspect.lower() in MAJOR_ASPECTS else MINOR_ASPECT_FACTOR

    involves_angle = is_angle(aspect.p1_name) or is_angle(aspect.p2_name)
    angle_penalty = ANGLE_PENALTY if involves_angle and orb > ANGLE_TIGHT_ORB else 1.0

    orb_factor = max(MIN_ORB_FACTOR, 1 - orb / ORB_FACTOR_SPAN)
    node_penalty = NODE_PENALTY if is_lunar_node(aspect.p1_name) or is_lunar_node(aspect.p2_name) else 1.0

    return (pair_score * kind_weight * slow_penalty * kind_factor
            * angle_penalty * orb_factor * node_penalty) / 100


def find_best_aspect(
    aspects: Sequence[Aspect],
    filter_fn: Optional[Callable[[Aspect], bool]] = None,
    use_scoring: bool = True,
    max_orb: float = DEFAULT_MAX_ORB,
) -> Optional[Aspect]:
    """
    Pick the most significant (or tightest) aspect.

    Args:
        aspects: Candidates
        filter_fn: Narrows candidates; when nothing passes, scoring mode
            falls back to all aspects and orb mode returns None
        use_scoring: Sort by score when True, by absolute orb when False
        max_orb: Preferred orb limit; ignored if nothing is within it

    Returns:
        Best aspect, or None if there are no candidates
    """
    candidates = list(aspects)

    if filter_fn is not None:
        filtered = [a for a in candidates if filter_fn(a)]
        if filtered:
            candidates = filtered
        elif not use_scoring:
            return None

    within_orb = [a for a in candidates if abs(a.orbit) <= max_orb]
    pool = within_orb or candidates
    if not pool:
        return None

    # sorted() is stable, so ties keep list order
    if use_scoring:
        return sorted(pool, key=score_aspect, reverse=True)[0]
    return sorted(pool, key=lambda a: abs(a.orbit))[0]


def _same_angle(aspect: Aspect) -> bool:
    return is_angle(aspect.p1_name) and normalize_point_name(aspect.p1_name) == normalize_point_name(aspect.p2_name)


def _sun_contact(aspect: Aspect) -> bool:
    # Sun-Sun or Sun-Moon in either order; Moon-Moon does not count
    if not (is_luminary(aspect.p1_name) and is_luminary(aspect.p2_name)):
        return False
    return "sun" in (normalize_point_name(aspect.p1_name), normalize_point_name(aspect.p2_name))


def find_synastry_key_aspect(aspects: Sequence[Aspect]) -> Optional[Aspect]:
    """
    Key aspect for a relationship comparison.

    Priority ladder: an angle to the same angle within 10 degrees, then a
    Sun-Sun or Sun-Moon contact within 10 degrees, then the best scored
    aspect within 5 degrees, then within 10.

    Returns:
        Key aspect, or None for an empty list
    """
    for rule in (_same_angle, _sun_contact):
        found = find_best_aspect(aspects, rule, use_scoring=False)
        if found is not None and abs(found.orbit) <= DEFAULT_MAX_ORB:
            return found

    within_tight = [a for a in aspects if abs(a.orbit) <= KEY_ASPECT_TIGHT_ORB]
    if within_tight:
        return find_best_aspect(within_tight)

    # Falls back to every aspect when none is within 10 degrees
    return find_best_aspect(aspects, max_orb=DEFAULT_MAX_ORB)


def rank_aspects(aspects: Iterable[Aspect], limit: Optional[int] = None) -> list[Aspect]:
    """Aspects by descending score, ties in input order."""
    ranked = sorted(aspects, key=score_aspect, reverse=True)
    return ranked if limit is None else ranked[:limit]


def headline_aspect(day: TransitDayData, max_orb: float = DEFAULT_MAX_ORB) -> Optional[Aspect]:
    """Most significant aspect of one transit day."""
    return find_best_aspect(day.aspects, max_orb=max_orb)


def format_aspect(aspect: Optional[Aspect]) -> str:
    if aspect is None:
        return "—"
    return f"{aspect.p1_name}-{aspect.p2_name} {aspect.aspect} ({aspect.orbit:.1f}°)"
