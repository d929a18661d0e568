"""
resopt/ir.py

Register-based instruction IR and the class/store model the pass operates on.

The model mirrors dex bytecode closely enough for static initializers:
- Instruction: opcode, destination register, source registers and the
  opcode-specific operand (literal, type, field, method, payload data)
- MethodCode: the ordered, mutable instruction list of one method
- DexMethod / DexField / DexClass: class members
- DexStore: a named group of dex files, each an ordered list of classes

Instructions compare by identity, so a scan can hold references to the
instructions it matched and find them again after the list was edited.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Optional

from resopt import payload
from resopt.errors import MalformedPayload


class Opcode(Enum):
    """Opcodes understood by the IR, named as in dex disassembly."""
    NOP = "nop"
    CONST = "const"
    CONST_STRING = "const-string"
    CONST_CLASS = "const-class"
    MOVE = "move"
    MOVE_OBJECT = "move-object"
    MOVE_RESULT = "move-result"
    MOVE_RESULT_OBJECT = "move-result-object"
    NEW_INSTANCE = "new-instance"
    NEW_ARRAY = "new-array"
    FILLED_NEW_ARRAY = "filled-new-array"
    FILL_ARRAY_DATA = "fill-array-data"
    ARRAY_LENGTH = "array-length"
    AGET = "aget"
    AGET_OBJECT = "aget-object"
    APUT = "aput"
    APUT_OBJECT = "aput-object"
    IGET = "iget"
    IGET_OBJECT = "iget-object"
    IPUT = "iput"
    IPUT_OBJECT = "iput-object"
    SGET = "sget"
    SGET_OBJECT = "sget-object"
    SPUT = "sput"
    SPUT_OBJECT = "sput-object"
    ADD_INT = "add-int"
    ADD_INT_LIT = "add-int/lit"
    INVOKE_STATIC = "invoke-static"
    INVOKE_VIRTUAL = "invoke-virtual"
    INVOKE_DIRECT = "invoke-direct"
    RETURN_VOID = "return-void"
    RETURN = "return"
    RETURN_OBJECT = "return-object"
    THROW = "throw"
    GOTO = "goto"
    IF_EQ = "if-eq"
    IF_NE = "if-ne"
    IF_EQZ = "if-eqz"
    IF_NEZ = "if-nez"
    PACKED_SWITCH = "packed-switch"
    SPARSE_SWITCH = "sparse-switch"

    @classmethod
    def from_name(cls, name: str) -> Opcode:
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"unknown opcode: {name!r}") from None


BRANCH_OPCODES = frozenset({
    Opcode.GOTO,
    Opcode.IF_EQ, Opcode.IF_NE,
    Opcode.IF_EQZ, Opcode.IF_NEZ,
    Opcode.PACKED_SWITCH, Opcode.SPARSE_SWITCH,
    Opcode.THROW,
})

# Stores that take the stored value in srcs[0]
OBJECT_STORE_OPCODES = frozenset({
    Opcode.SPUT_OBJECT,
    Opcode.APUT_OBJECT,
    Opcode.IPUT_OBJECT,
})

LITERAL_OPCODES = frozenset({Opcode.CONST, Opcode.ADD_INT_LIT})


@dataclass(eq=False)
class Instruction:
    """
    A single IR instruction.

    Only the operand matching the opcode is set: `literal` for constant
    loads, `type_ref` for allocations, `field_ref` for field accesses,
    `method_ref` for invokes, `string` for const-string, `data` for
    fill-array-data and `target` (an instruction index) for branches.
    """
    opcode: Opcode
    dest: Optional[int] = None
    srcs: tuple[int, ...] = ()
    literal: Optional[int] = None
    type_ref: Optional[str] = None
    field_ref: Optional[str] = None
    method_ref: Optional[str] = None
    string: Optional[str] = None
    data: Optional[bytes] = None
    target: Optional[int] = None

    def __post_init__(self):
        self.srcs = tuple(self.srcs)

    # -- constructors for the instructions the pass emits or matches ---------

    @classmethod
    def const(cls, dest: int, literal: int) -> Instruction:
        return cls(Opcode.CONST, dest=dest, literal=literal)

    @classmethod
    def new_array(cls, dest: int, size_reg: int, type_ref: str = "[I") -> Instruction:
        return cls(Opcode.NEW_ARRAY, dest=dest, srcs=(size_reg,), type_ref=type_ref)

    @classmethod
    def fill_array_data(cls, array_reg: int, data: bytes) -> Instruction:
        return cls(Opcode.FILL_ARRAY_DATA, srcs=(array_reg,), data=bytes(data))

    @classmethod
    def sput_object(cls, src: int, field_ref: str) -> Instruction:
        return cls(Opcode.SPUT_OBJECT, srcs=(src,), field_ref=field_ref)

    @classmethod
    def return_void(cls) -> Instruction:
        return cls(Opcode.RETURN_VOID)

    # -- queries --------------------------------------------------------------

    def writes(self, reg: int) -> bool:
        return self.dest == reg

    def reads(self, reg: int) -> bool:
        return reg in self.srcs

    def is_branch(self) -> bool:
        return self.opcode in BRANCH_OPCODES

    def is_const(self) -> bool:
        return self.opcode == Opcode.CONST

    def is_object_store_of(self, reg: int) -> bool:
        """True if this instruction stores the value held in `reg` somewhere."""
        return self.opcode in OBJECT_STORE_OPCODES and bool(self.srcs) and self.srcs[0] == reg

    # -- operand access ---------------------------------------------------------

    def get_literal(self) -> int:
        if self.opcode not in LITERAL_OPCODES:
            raise TypeError(f"{self.opcode.value} has no literal")
        return self.literal

    def set_literal(self, literal: int) -> None:
        if self.opcode not in LITERAL_OPCODES:
            raise TypeError(f"{self.opcode.value} has no literal")
        self.literal = literal

    def get_data(self) -> bytes:
        if self.opcode != Opcode.FILL_ARRAY_DATA:
            raise TypeError(f"{self.opcode.value} has no payload")
        return self.data

    def set_data(self, data: bytes) -> None:
        if self.opcode != Opcode.FILL_ARRAY_DATA:
            raise TypeError(f"{self.opcode.value} has no payload")
        self.data = bytes(data)

    def show(self) -> str:
        """Human-readable disassembly, e.g. `new-array v1, v0, [I`."""
        operands = []
        if self.dest is not None:
            operands.append(f"v{self.dest}")
        operands.extend(f"v{r}" for r in self.srcs)
        for extra in (self.type_ref, self.field_ref, self.method_ref):
            if extra is not None:
                operands.append(extra)
        if self.string is not None:
            operands.append(repr(self.string))
        if self.literal is not None:
            operands.append(str(self.literal))
        if self.target is not None:
            operands.append(f":{self.target}")
        if not operands:
            return self.opcode.value
        return f"{self.opcode.value} {', '.join(operands)}"

    def __repr__(self) -> str:
        return f"Insn({self.show()})"


class MethodCode:
    """Ordered, mutable instruction list of a single method."""

    def __init__(self, instructions: Iterable[Instruction] = ()):
        self._insns: list[Instruction] = list(instructions)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self._insns)

    def __len__(self) -> int:
        return len(self._insns)

    def __getitem__(self, index: int) -> Instruction:
        return self._insns[index]

    def index(self, insn: Instruction) -> int:
        """Position of `insn`, matched by identity."""
        for i, candidate in enumerate(self._insns):
            if candidate is insn:
                return i
        raise ValueError(f"{insn!r} is not part of this method")

    def insert_before(self, anchor: Instruction, insn: Instruction) -> None:
        self._insns.insert(self.index(anchor), insn)

    def insert_after(self, anchor: Instruction, insn: Instruction) -> None:
        self._insns.insert(self.index(anchor) + 1, insn)

    def append(self, insn: Instruction) -> None:
        self._insns.append(insn)

    def show(self) -> list[str]:
        return [insn.show() for insn in self._insns]

    def dump(self) -> str:
        """Disassembly with array payloads decoded below their instruction."""
        lines = []
        for i, insn in enumerate(self._insns):
            lines.append(f"{i:4d}: {insn.show()}")
            if insn.opcode == Opcode.FILL_ARRAY_DATA:
                try:
                    values = payload.decode(insn.data)
                    lines.append("      [" + ", ".join(f"0x{v:08x}" for v in values) + "]")
                except MalformedPayload as e:
                    lines.append(f"      <malformed payload: {e}> {insn.data.hex()}")
        return '\n'.join(lines)


@dataclass
class DexField:
    name: str
    type: str
    is_static: bool = True


@dataclass
class DexMethod:
    name: str
    descriptor: str = "()V"
    code: Optional[MethodCode] = None
    is_static: bool = False

    def get_code(self) -> Optional[MethodCode]:
        return self.code


@dataclass
class DexClass:
    """A class: descriptor-style name (`Lcom/x/R$styleable;`) plus members."""
    name: str
    super_name: str = "Ljava/lang/Object;"
    fields: list[DexField] = field(default_factory=list)
    methods: list[DexMethod] = field(default_factory=list)

    def get_clinit(self) -> Optional[DexMethod]:
        """The static initializer, if the class has one."""
        for method in self.methods:
            if method.name == "<clinit>":
                return method
        return None

    def __str__(self) -> str:
        return self.name


@dataclass
class DexStore:
    """A named store holding one or more dex files of classes."""
    name: str
    dexen: list[list[DexClass]] = field(default_factory=list)

    def iter_classes(self) -> Iterator[DexClass]:
        for dex in self.dexen:
            yield from dex


def iter_store_classes(stores: Iterable[DexStore]) -> Iterator[DexClass]:
    """All classes of all stores, in store and dex order."""
    for store in stores:
        yield from store.iter_classes()
