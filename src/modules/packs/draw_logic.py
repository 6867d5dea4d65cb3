"""
Pack draw rules.

The catalog is split into a high tier (rating >= threshold) and a standard
tier. One uniform roll decides the tier: below `high_tier_chance` picks the
high tier, anything else the standard tier. An empty chosen tier falls back
to the whole catalog. Within the chosen pool every entry is equally likely.

The random source is injected so draws are reproducible in tests.
"""

from __future__ import annotations

import random
import uuid
from typing import List, Optional, Protocol, Sequence, Tuple, TypeVar


class Rated(Protocol):
    rating: int


T = TypeVar("T", bound=Rated)


def partition_tiers(catalog: Sequence[T], min_rating: int) -> Tuple[List[T], List[T]]:
    """Return (high_tier, standard_tier)."""
    high = [entry for entry in catalog if entry.rating >= min_rating]
    standard = [entry for entry in catalog if entry.rating < min_rating]
    return high, standard


def draw_template(
    catalog: Sequence[T],
    rng: random.Random,
    min_rating: int,
    high_tier_chance: float,
) -> Optional[T]:
    """Pick one template, or None for an empty catalog."""
    if not catalog:
        return None

    high, standard = partition_tiers(catalog, min_rating)
    pool = high if rng.random() < high_tier_chance else standard
    if not pool:
        pool = list(catalog)
    return rng.choice(pool)


def generate_instance_id(now: float, template_id: str) -> str:
    """
    Time-based id with a random suffix: `p_<epoch ms>_<12 hex chars>`.

    Regenerated in the (theoretical) case it equals the template id.
    """
    while True:
        instance_id = f"p_{int(now * 1000)}_{uuid.uuid4().hex[:12]}"
        if instance_id != template_id:
            return instance_id
