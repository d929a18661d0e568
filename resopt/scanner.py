"""
resopt/scanner.py

Reconstructs constant int-array declarations from a static initializer.

Generated resource holders declare each array with the same straight-line
idiom:

    const v0, 4                      # size definer
    new-array v1, v0, [I             # allocation
    fill-array-data v1, <payload>    # payload fill
    sput-object v1, LR;.foo:[I       # consuming store (optional)

There is no symbolic metadata at this stage, so groups are found purely by
code shape. Each allocation gets a small state machine that is fed the
following instructions until it completes or gives up:

    AWAIT_FILL --fill--> AWAIT_STORE --store--> DONE
        |                    |
        +--> DISCARDED       +--> DONE (no store)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from resopt import payload
from resopt.errors import MalformedInitializer
from resopt.ids import ResourceId
from resopt.ir import Instruction, MethodCode, Opcode

log = logging.getLogger(__name__)

INT_ARRAY_TYPE = "[I"

# Opcodes a compiler emits in a generated holder initializer
GENERATED_OPCODES = frozenset({
    Opcode.NOP,
    Opcode.CONST,
    Opcode.NEW_ARRAY,
    Opcode.FILL_ARRAY_DATA,
    Opcode.SPUT,
    Opcode.SPUT_OBJECT,
    Opcode.RETURN_VOID,
})


@dataclass(frozen=True)
class ArrayElement:
    """One array slot: the id stored there and its 0-based position."""
    res_id: ResourceId
    slot: int


@dataclass(eq=False)
class ArrayGroup:
    """
    A constant int array declared in a static initializer.

    Attributes:
        size_definer: const instruction supplying the declared length
        allocation: new-array instruction
        fill: fill-array-data instruction initializing the array
        elements: decoded payload, in slot order
        store: instruction storing the array (None if not found)
        shared_size_definer: the size register is read by instructions
            other than `allocation` while it holds the size definer's value
        size_read_after: some of those readers come after `allocation`
    """
    size_definer: Instruction
    allocation: Instruction
    fill: Instruction
    elements: tuple[ArrayElement, ...]
    store: Optional[Instruction] = None
    shared_size_definer: bool = False
    size_read_after: bool = False

    @property
    def array_register(self) -> int:
        return self.allocation.dest

    @property
    def size_register(self) -> int:
        return self.allocation.srcs[0]

    @property
    def declared_size(self) -> int:
        return self.size_definer.get_literal()

    @property
    def ids(self) -> list[ResourceId]:
        return [e.res_id for e in self.elements]

    @property
    def field_name(self) -> Optional[str]:
        if self.store is not None:
            return self.store.field_ref
        return None

    def describe(self) -> str:
        target = self.field_name or f"v{self.array_register}"
        return f"{target}[{len(self.elements)}]"


class MatchState(Enum):
    AWAIT_FILL = auto()
    AWAIT_STORE = auto()
    DONE = auto()
    DISCARDED = auto()


class GroupMatcher:
    """State machine matching one allocation to its fill and store."""

    def __init__(self, allocation: Instruction):
        self.allocation = allocation
        self.reg = allocation.dest
        self.state = MatchState.AWAIT_FILL
        self.fill: Optional[Instruction] = None
        self.store: Optional[Instruction] = None
        self.values: list[int] = []

    @property
    def active(self) -> bool:
        return self.state in (MatchState.AWAIT_FILL, MatchState.AWAIT_STORE)

    def feed(self, insn: Instruction) -> None:
        if self.state == MatchState.AWAIT_FILL:
            self._await_fill(insn)
        elif self.state == MatchState.AWAIT_STORE:
            self._await_store(insn)

    def finish(self) -> None:
        """End of method reached."""
        if self.state == MatchState.AWAIT_FILL:
            self.state = MatchState.DISCARDED
        elif self.state == MatchState.AWAIT_STORE:
            self.state = MatchState.DONE

    def _await_fill(self, insn: Instruction) -> None:
        if insn.opcode == Opcode.FILL_ARRAY_DATA and insn.reads(self.reg):
            self.fill = insn
            self.values = payload.decode(insn.get_data())
            self.state = MatchState.AWAIT_STORE
        elif insn.writes(self.reg):
            self.state = MatchState.DISCARDED
        elif insn.reads(self.reg) and not insn.is_object_store_of(self.reg):
            self.state = MatchState.DISCARDED

    def _await_store(self, insn: Instruction) -> None:
        if insn.is_object_store_of(self.reg):
            self.store = insn
            self.state = MatchState.DONE
        elif insn.writes(self.reg) or insn.reads(self.reg):
            self.state = MatchState.DONE


@dataclass
class ScanResult:
    """Groups found in a method plus what the scanner could not attribute."""
    groups: list[ArrayGroup] = field(default_factory=list)
    unrelated: list[Instruction] = field(default_factory=list)
    discarded: int = 0


class ArrayGroupScanner:
    """
    Finds the int-array groups of one straight-line method.

    Args:
        class_name: Owner class, used in error messages and logs
        customized: Whether the class is known to carry hand-written code.
            Changes how unrelated instructions are logged, never what
            matches.
    """

    def __init__(self, class_name: str = "", customized: bool = False):
        self.class_name = class_name
        self.customized = customized

    def scan(self, code: MethodCode) -> ScanResult:
        """
        Scan `code` and return its array groups in allocation order.

        Raises:
            MalformedInitializer: branching code, an allocation without
                operands, a filled allocation whose size definer is missing
                or non-constant, or a size that disagrees with the payload
            MalformedPayload: a matched fill carries a broken payload
        """
        insns = list(code)
        self._check_straight_line(insns)

        result = ScanResult()
        matchers: list[GroupMatcher] = []
        active: list[GroupMatcher] = []

        for insn in insns:
            for matcher in active:
                matcher.feed(insn)
            active = [m for m in active if m.active]

            if insn.opcode == Opcode.NEW_ARRAY:
                if insn.type_ref != INT_ARRAY_TYPE:
                    log.debug("%s: skipping %s", self.class_name, insn.show())
                else:
                    self._check_allocation(insn)
                    matcher = GroupMatcher(insn)
                    matchers.append(matcher)
                    active.append(matcher)

            if insn.opcode not in GENERATED_OPCODES:
                result.unrelated.append(insn)

        for matcher in active:
            matcher.finish()

        for matcher in matchers:
            if matcher.state == MatchState.DISCARDED:
                log.debug(
                    "%s: %s has no payload, left untouched",
                    self.class_name, matcher.allocation.show(),
                )
                result.discarded += 1
                continue
            result.groups.append(self._build_group(insns, matcher))

        self._report_unrelated(result.unrelated)
        return result

    def _check_straight_line(self, insns: list[Instruction]) -> None:
        for insn in insns:
            if insn.is_branch():
                raise MalformedInitializer(
                    f"static initializer has control flow ({insn.show()})",
                    self.class_name,
                )

    def _check_allocation(self, insn: Instruction) -> None:
        if insn.dest is None or not insn.srcs:
            raise MalformedInitializer(
                f"{insn.show()} lacks its array or size register",
                self.class_name,
            )

    def _find_size_definer(self, insns: list[Instruction], alloc_index: int) -> Instruction:
        size_reg = insns[alloc_index].srcs[0]
        for insn in reversed(insns[:alloc_index]):
            if insn.writes(size_reg):
                if not insn.is_const():
                    raise MalformedInitializer(
                        f"size of {insns[alloc_index].show()} comes from "
                        f"non-constant {insn.show()}",
                        self.class_name,
                    )
                return insn
        raise MalformedInitializer(
            f"no size definer for {insns[alloc_index].show()}",
            self.class_name,
        )

    def _build_group(self, insns: list[Instruction], matcher: GroupMatcher) -> ArrayGroup:
        size_definer = self._find_size_definer(insns, _position(insns, matcher.allocation))
        declared = size_definer.get_literal()
        if declared != len(matcher.values):
            raise MalformedInitializer(
                f"{matcher.allocation.show()} declares {declared} elements "
                f"but its payload holds {len(matcher.values)}",
                self.class_name,
            )

        read_before, read_after = self._size_readers(insns, size_definer, matcher.allocation)
        elements = tuple(
            ArrayElement(ResourceId(value), slot)
            for slot, value in enumerate(matcher.values)
        )
        return ArrayGroup(
            size_definer=size_definer,
            allocation=matcher.allocation,
            fill=matcher.fill,
            elements=elements,
            store=matcher.store,
            shared_size_definer=read_before or read_after,
            size_read_after=read_after,
        )

    @staticmethod
    def _size_readers(
        insns: list[Instruction],
        size_definer: Instruction,
        allocation: Instruction,
    ) -> tuple[bool, bool]:
        """Whether the size register is read by others before/after the allocation."""
        size_reg = allocation.srcs[0]
        start = _position(insns, size_definer) + 1
        alloc_index = _position(insns, allocation)

        read_before = any(insn.reads(size_reg) for insn in insns[start:alloc_index])

        read_after = False
        if allocation.dest != size_reg:
            for insn in insns[alloc_index + 1:]:
                if insn.reads(size_reg):
                    read_after = True
                    break
                if insn.writes(size_reg):
                    break
        return read_before, read_after

    def _report_unrelated(self, unrelated: list[Instruction]) -> None:
        if not unrelated:
            return
        if self.customized:
            log.debug(
                "%s: %d custom instructions in static initializer",
                self.class_name, len(unrelated),
            )
            return
        for insn in unrelated:
            log.warning(
                "%s: unexpected instruction in generated initializer: %s",
                self.class_name, insn.show(),
            )


def _position(insns: list[Instruction], insn: Instruction) -> int:
    for i, candidate in enumerate(insns):
        if candidate is insn:
            return i
    raise ValueError(f"{insn!r} not found")
