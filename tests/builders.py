"""Builders for holder classes and static initializers used across tests."""

from __future__ import annotations

from typing import Optional

from resopt import payload
from resopt.ir import DexClass, DexMethod, DexStore, Instruction, MethodCode, Opcode

R_CLASS = "Lcom/redextest/R;"
STYLEABLE_CLASS = "Lcom/redextest/R$styleable;"


def array_decl(
    values: list[int],
    field: Optional[str] = None,
    size_reg: int = 0,
    array_reg: int = 0,
    declared: Optional[int] = None,
) -> list[Instruction]:
    """`static int[] field = {values}` the way d8 emits it."""
    insns = [
        Instruction.const(size_reg, len(values) if declared is None else declared),
        Instruction.new_array(array_reg, size_reg),
        Instruction.fill_array_data(array_reg, payload.encode(values)),
    ]
    if field is not None:
        insns.append(Instruction.sput_object(array_reg, field))
    return insns


def clinit_class(name: str, insns: list[Instruction], with_return: bool = True) -> DexClass:
    insns = list(insns)
    if with_return:
        insns.append(Instruction.return_void())
    clinit = DexMethod("<clinit>", "()V", MethodCode(insns), is_static=True)
    return DexClass(name, methods=[clinit])


def umbrella_r_class() -> DexClass:
    """Customized R class: three arrays grouped by type plus injected junk."""
    insns = []
    insns += array_decl([0x7f010000, 0x7f010001, 0x7f010002, 0x7f010003], f"{R_CLASS}.attrs:[I")
    insns += [
        Instruction(Opcode.CONST_STRING, dest=1, string="extra junk"),
        Instruction(Opcode.SPUT_OBJECT, srcs=(1,), field_ref=f"{R_CLASS}.junk:Ljava/lang/String;"),
        Instruction(Opcode.INVOKE_STATIC, method_ref="Lcom/redextest/Hooks;.init:()V"),
    ]
    insns += array_decl([0x7f020000, 0x7f020001, 0x7f020002, 0x7f020003], f"{R_CLASS}.drawables:[I")
    insns += array_decl([0x7f030000, 0x7f030001], f"{R_CLASS}.strings:[I")
    return clinit_class(R_CLASS, insns)


def styleable_class() -> DexClass:
    return clinit_class(
        STYLEABLE_CLASS,
        array_decl([0x7f040000, 0x7f040001], f"{STYLEABLE_CLASS}.CustomView:[I"),
    )


def make_stores(*classes: DexClass) -> list[DexStore]:
    return [DexStore("classes", [list(classes)])]


def clinit_code(cls: DexClass) -> MethodCode:
    return cls.get_clinit().get_code()


def find_const_value(code: MethodCode, use: Instruction, reg: int) -> int:
    """Most recent const written to `reg` before `use`."""
    literal = None
    for insn in code:
        if insn is use:
            break
        if insn.opcode == Opcode.CONST and insn.dest == reg:
            literal = insn.literal
    assert literal is not None, "did not find const"
    return literal


def array_sizes(code: MethodCode) -> list[int]:
    return [
        find_const_value(code, insn, insn.srcs[0])
        for insn in code
        if insn.opcode == Opcode.NEW_ARRAY
    ]


def payloads(code: MethodCode) -> list[list[int]]:
    return [
        payload.decode(insn.data)
        for insn in code
        if insn.opcode == Opcode.FILL_ARRAY_DATA
    ]
