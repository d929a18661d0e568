"""
resopt/dex_json.py

JSON interchange format for package stores.

A dump holds a list of stores, each with a list of dex files, each a list of
classes. Instructions are objects keyed by their operands:

    {"op": "const", "dest": 0, "literal": 4}
    {"op": "new-array", "dest": 1, "srcs": [0], "type": "[I"}
    {"op": "fill-array-data", "srcs": [1], "data": "0003040002000000..."}
    {"op": "sput-object", "srcs": [1], "field": "Lcom/x/R;.foo:[I"}
    {"op": "return-void"}

Payload data is hex encoded.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

from resopt.ir import (
    DexClass,
    DexField,
    DexMethod,
    DexStore,
    Instruction,
    MethodCode,
    Opcode,
)

# JSON key -> Instruction attribute, for the plain operands
_OPERAND_KEYS = {
    "dest": "dest",
    "literal": "literal",
    "type": "type_ref",
    "field": "field_ref",
    "method": "method_ref",
    "string": "string",
    "target": "target",
}


def instruction_from_json(data: dict[str, Any]) -> Instruction:
    """Parse one instruction object."""
    try:
        opcode = Opcode.from_name(data["op"])
    except KeyError:
        raise ValueError(f"instruction without opcode: {data!r}") from None

    kwargs: dict[str, Any] = {"srcs": tuple(data.get("srcs", ()))}
    for key, attr in _OPERAND_KEYS.items():
        if key in data:
            kwargs[attr] = data[key]
    if "data" in data:
        try:
            kwargs["data"] = bytes.fromhex(data["data"])
        except (TypeError, ValueError) as e:
            raise ValueError(f"payload data is not hex: {data['data']!r}") from e
    return Instruction(opcode, **kwargs)


def instruction_to_json(insn: Instruction) -> dict[str, Any]:
    out: dict[str, Any] = {"op": insn.opcode.value}
    if insn.dest is not None:
        out["dest"] = insn.dest
    if insn.srcs:
        out["srcs"] = list(insn.srcs)
    for key, attr in _OPERAND_KEYS.items():
        if key == "dest":
            continue
        value = getattr(insn, attr)
        if value is not None:
            out[key] = value
    if insn.data is not None:
        out["data"] = insn.data.hex()
    return out


def class_from_json(data: dict[str, Any]) -> DexClass:
    fields = [
        DexField(f["name"], f["type"], f.get("static", True))
        for f in data.get("fields", [])
    ]
    methods = []
    for m in data.get("methods", []):
        code = None
        if m.get("code") is not None:
            code = MethodCode(instruction_from_json(i) for i in m["code"])
        methods.append(DexMethod(
            name=m["name"],
            descriptor=m.get("descriptor", "()V"),
            code=code,
            is_static=m.get("static", m["name"] == "<clinit>"),
        ))
    return DexClass(
        name=data["name"],
        super_name=data.get("super", "Ljava/lang/Object;"),
        fields=fields,
        methods=methods,
    )


def class_to_json(cls: DexClass) -> dict[str, Any]:
    return {
        "name": cls.name,
        "super": cls.super_name,
        "fields": [
            {"name": f.name, "type": f.type, "static": f.is_static}
            for f in cls.fields
        ],
        "methods": [
            {
                "name": m.name,
                "descriptor": m.descriptor,
                "static": m.is_static,
                "code": None if m.code is None else [instruction_to_json(i) for i in m.code],
            }
            for m in cls.methods
        ],
    }


def stores_from_dict(data: dict[str, Any]) -> list[DexStore]:
    if not isinstance(data, dict) or "stores" not in data:
        raise ValueError("store dump must be an object with a 'stores' list")
    try:
        return [
            DexStore(
                name=s.get("name", "classes"),
                dexen=[[class_from_json(c) for c in dex] for dex in s.get("dexen", [])],
            )
            for s in data["stores"]
        ]
    except KeyError as e:
        raise ValueError(f"store dump is missing required key {e}") from e


def stores_to_dict(stores: Iterable[DexStore]) -> dict[str, Any]:
    return {
        "stores": [
            {
                "name": store.name,
                "dexen": [[class_to_json(c) for c in dex] for dex in store.dexen],
            }
            for store in stores
        ]
    }


def load_stores(path: str | Path) -> list[DexStore]:
    """Load stores from a JSON dump."""
    with open(path) as f:
        return stores_from_dict(json.load(f))


def dump_stores(stores: Iterable[DexStore], path: str | Path) -> None:
    """Write stores to a JSON dump."""
    with open(path, "w") as f:
        json.dump(stores_to_dict(stores), f, indent=2)
        f.write("\n")
