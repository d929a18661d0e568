"""
resopt

Resource-array remapping pass for a dex bytecode optimizer.

Rewrites the static initializers of generated resource id holder classes
(R, R$styleable, ...) after resource ids were renumbered or deleted:
- umbrella holders drop deleted ids and shrink their arrays
- attribute-list holders zero deleted ids in place, keeping every offset
"""

from resopt.config import ClassRole, ResourceConfig, RoleRule
from resopt.errors import (
    MalformedInitializer,
    MalformedPayload,
    ResourceRemapError,
    UnknownRole,
)
from resopt.ids import RemapTable, ResourceId, group_by_type
from resopt.ir import (
    DexClass,
    DexField,
    DexMethod,
    DexStore,
    Instruction,
    MethodCode,
    Opcode,
)
from resopt.remapper import (
    ClassReport,
    PassStats,
    ResourceArrayRemapper,
    remap_resource_class_arrays,
)
from resopt.scanner import ArrayElement, ArrayGroup, ArrayGroupScanner, ScanResult
from resopt.strategies import (
    PositionalStrategy,
    RemapStrategy,
    RewritePlan,
    SequentialStrategy,
    strategy_for,
)


__all__ = [
    # Ids
    "ResourceId",
    "RemapTable",
    "group_by_type",

    # Config
    "ClassRole",
    "ResourceConfig",
    "RoleRule",

    # Errors
    "ResourceRemapError",
    "MalformedPayload",
    "MalformedInitializer",
    "UnknownRole",

    # IR
    "Opcode",
    "Instruction",
    "MethodCode",
    "DexField",
    "DexMethod",
    "DexClass",
    "DexStore",

    # Scanning and planning
    "ArrayElement",
    "ArrayGroup",
    "ArrayGroupScanner",
    "ScanResult",
    "RemapStrategy",
    "SequentialStrategy",
    "PositionalStrategy",
    "RewritePlan",
    "strategy_for",

    # Driver
    "ClassReport",
    "PassStats",
    "ResourceArrayRemapper",
    "remap_resource_class_arrays",
]
