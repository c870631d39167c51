"""Next-class resolution for year-end promotion.

Class names are free text ("Class 7", "7", "7th Standard", "LKG"), so the default
strategy works off the first number in the name: a student in a class whose name
holds N moves to the first class in the same branch whose name contains N + 1.
Sections are not matched; sections may merge or split across years.
"""
from __future__ import annotations

import re
from typing import Optional, Protocol

from app.models.school_class import SchoolClassOut
from app.services.store import SchoolStore

_CLASS_NUMBER = re.compile(r"\d+")


class PromotionStrategy(Protocol):
    async def next_class(self, store: SchoolStore, current: SchoolClassOut) -> Optional[SchoolClassOut]: ...


def next_class_number(name: str) -> Optional[int]:
    """Number of the class after `name`, or None when the name carries no number."""
    match = _CLASS_NUMBER.search(name)
    if not match:
        return None
    return int(match.group(0)) + 1


class NumericPromotionStrategy:
    """Promote by incrementing the first number in the class name, within the same branch."""

    async def next_class(self, store: SchoolStore, current: SchoolClassOut) -> Optional[SchoolClassOut]:
        target = next_class_number(current.name)
        if target is None:
            # LKG, UKG, Nursery... have no deterministic successor
            return None
        # First match in store order wins when several sections share the number.
        return await store.find_class_containing(str(target), current.branch)


default_strategy = NumericPromotionStrategy()


async def resolve_next_class(
    store: SchoolStore,
    current: SchoolClassOut,
    strategy: PromotionStrategy | None = None,
) -> Optional[SchoolClassOut]:
    """Class a student of `current` moves to next year; None means graduated or unassigned."""
    return await (strategy or default_strategy).next_class(store, current)
