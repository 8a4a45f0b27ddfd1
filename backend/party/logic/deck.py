"""
Deck construction for a game.

The catalog is replicated end to end until the deck covers every player's
opening hand, each replica stamped with a fresh instance id, then the whole
sequence is permuted with a Fisher-Yates shuffle.
"""

from __future__ import annotations

import math
import random
import secrets
from typing import TYPE_CHECKING, TypeVar

from party.logic.models import Card, CardTemplate

if TYPE_CHECKING:
    from collections.abc import Sequence

_system_rng = secrets.SystemRandom()

T = TypeVar("T")


def required_deck_size(catalog_size: int, required_size: int) -> int:
    """Smallest multiple of ``catalog_size`` that is >= ``required_size`` (at least one copy)."""
    copies = max(1, math.ceil(required_size / catalog_size))
    return copies * catalog_size


def fisher_yates_shuffle(items: Sequence[T], rng: random.Random) -> list[T]:
    """
    Return a uniformly permuted copy of ``items``.

    For i in n-1..1: swap items[i] with items[randint(0, i)].
    """
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


def build_deck(
    catalog: Sequence[CardTemplate],
    required_size: int,
    rng: random.Random | None = None,
) -> list[Card]:
    """Build a shuffled deck of at least ``required_size`` unique card instances.

    Instance ids take the form ``"{template.id}-{n}"`` where ``n`` counts every
    card stamped so far, so ids stay unique even when the catalog repeats.
    Raises ValueError for an empty catalog.
    """
    if not catalog:
        raise ValueError("Cannot build a deck from an empty catalog")

    target = required_deck_size(len(catalog), required_size)
    deck: list[Card] = []
    stamped = 0
    while len(deck) < target:
        for template in catalog:
            deck.append(Card(instance_id=f"{template.id}-{stamped}", label=template.label, image_ref=template.image_ref))
            stamped += 1
    return fisher_yates_shuffle(deck, rng or _system_rng)
