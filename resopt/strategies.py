"""
resopt/strategies.py

Deletion policies for resource id arrays.

Sequential (umbrella holder): arrays are only ever iterated, so deleted ids
are dropped and the array shrinks.

Positional (attribute-list holder): other generated code reads these arrays
at fixed offsets, so a deleted id becomes 0 and every other slot stays where
it was.

Both strategies are pure functions of the group and the remap table.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from resopt.config import ClassRole
from resopt.ids import RemapTable
from resopt.scanner import ArrayGroup

DELETED_SLOT = 0


@dataclass(frozen=True)
class RewritePlan:
    """
    New contents for one array group.

    Attributes:
        values: New element sequence, in slot order
        kept: Elements whose id is present in the table
        deleted: Elements whose id is absent from the table
        remapped: Kept elements whose value actually changed
        zeroed: Slots overwritten with 0 instead of being removed
        collisions: Extra occurrences of a new id already produced by a
            different old id in the same group
    """
    values: tuple[int, ...]
    kept: int = 0
    deleted: int = 0
    remapped: int = 0
    zeroed: int = 0
    collisions: int = 0

    @property
    def new_size(self) -> int:
        return len(self.values)


class RemapStrategy(ABC):
    """Turns an ArrayGroup into a RewritePlan."""

    role: ClassRole

    @abstractmethod
    def plan(self, group: ArrayGroup, table: RemapTable) -> RewritePlan:
        ...


class SequentialStrategy(RemapStrategy):
    """Drop deleted ids, shift the rest left."""

    role = ClassRole.SEQUENTIAL

    def plan(self, group: ArrayGroup, table: RemapTable) -> RewritePlan:
        values = []
        sources: dict[int, int] = {}
        deleted = remapped = collisions = 0
        for element in group.elements:
            old = element.res_id.value
            if old not in table:
                deleted += 1
                continue
            new = table[old]
            if new != old:
                remapped += 1
            if sources.setdefault(new, old) != old:
                collisions += 1
            values.append(new)
        return RewritePlan(
            values=tuple(values),
            kept=len(values),
            deleted=deleted,
            remapped=remapped,
            collisions=collisions,
        )


class PositionalStrategy(RemapStrategy):
    """Zero deleted ids in place; length and slot order never change."""

    role = ClassRole.POSITIONAL

    def plan(self, group: ArrayGroup, table: RemapTable) -> RewritePlan:
        values = []
        kept = deleted = remapped = 0
        for element in group.elements:
            old = element.res_id.value
            if old in table:
                new = table[old]
                kept += 1
                if new != old:
                    remapped += 1
                values.append(new)
            else:
                deleted += 1
                values.append(DELETED_SLOT)
        return RewritePlan(
            values=tuple(values),
            kept=kept,
            deleted=deleted,
            remapped=remapped,
            zeroed=deleted,
        )


STRATEGIES: dict[ClassRole, RemapStrategy] = {
    ClassRole.SEQUENTIAL: SequentialStrategy(),
    ClassRole.POSITIONAL: PositionalStrategy(),
}


def strategy_for(role: ClassRole) -> RemapStrategy:
    return STRATEGIES[role]
