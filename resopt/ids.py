"""
resopt/ids.py

Resource identifier model.

A resource id is a 32-bit value laid out as 0xPPTTEEEE:
- PP: package id (0x7f for the application, 0x01 for the framework)
- TT: type id (attr, drawable, string, ...)
- EEEE: entry index within the type

The RemapTable maps old ids to their new values after the id space has been
compacted. It is built once per run and only ever read afterwards.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Union

MAX_ID = 0xFFFFFFFF


@dataclass(frozen=True, order=True)
class ResourceId:
    """
    Immutable 32-bit resource identifier.

    Compared and hashed by its raw value.
    """
    value: int

    def __post_init__(self):
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise TypeError(f"resource id must be an int, got {type(self.value).__name__}")
        if not 0 <= self.value <= MAX_ID:
            raise ValueError(f"resource id out of 32-bit range: {self.value:#x}")

    @classmethod
    def parse(cls, raw: Union[str, int, ResourceId]) -> ResourceId:
        """Parse an id from an int, a decimal string or a 0x-prefixed hex string."""
        if isinstance(raw, ResourceId):
            return raw
        if isinstance(raw, str):
            try:
                return cls(int(raw.strip(), 0))
            except ValueError as e:
                raise ValueError(f"invalid resource id: {raw!r}") from e
        return cls(raw)

    @property
    def package_id(self) -> int:
        return (self.value >> 24) & 0xFF

    @property
    def type_id(self) -> int:
        return (self.value >> 16) & 0xFF

    @property
    def entry_id(self) -> int:
        return self.value & 0xFFFF

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return f"0x{self.value:08x}"


def group_by_type(ids: Iterable[ResourceId]) -> dict[int, list[ResourceId]]:
    """Group ids by type byte, keeping first-seen order for keys and members."""
    groups: dict[int, list[ResourceId]] = {}
    for res_id in ids:
        groups.setdefault(res_id.type_id, []).append(res_id)
    return groups


IdLike = Union[int, ResourceId]


class RemapTable(Mapping):
    """
    Read-only ordered mapping from old resource id to new resource id.

    A missing key means the resource was deleted. Identity entries mean the
    resource keeps its numeric value. Keys and values are stored as plain
    ints; lookups accept ints or ResourceIds.
    """

    __slots__ = ("_ids",)

    def __init__(self, pairs: Union[Mapping, Iterable[tuple[IdLike, IdLike]]] = ()):
        items = pairs.items() if isinstance(pairs, Mapping) else pairs
        ids: dict[int, int] = {}
        for old, new in items:
            ids[ResourceId.parse(old).value] = ResourceId.parse(new).value
        self._ids = ids

    @classmethod
    def from_json(cls, path: str | Path) -> RemapTable:
        """
        Load a table from JSON.

        Accepts either an object ({"0x7f010000": "0x7f010010"}) or a list of
        [old, new] pairs. Ids may be ints or strings.
        """
        with open(path) as f:
            data = json.load(f)
        if isinstance(data, dict):
            return cls(data)
        if isinstance(data, list):
            pairs = []
            for entry in data:
                if not isinstance(entry, (list, tuple)) or len(entry) != 2:
                    raise ValueError(f"remap table entry must be an [old, new] pair: {entry!r}")
                pairs.append((entry[0], entry[1]))
            return cls(pairs)
        raise ValueError(f"unsupported remap table format in {path}")

    def __getitem__(self, key: IdLike) -> int:
        return self._ids[int(key)]

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, (int, ResourceId)):
            return False
        return int(key) in self._ids

    def __iter__(self) -> Iterator[int]:
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __repr__(self) -> str:
        return f"RemapTable({len(self._ids)} ids)"

    def to_dict(self) -> dict[str, str]:
        return {f"0x{old:08x}": f"0x{new:08x}" for old, new in self._ids.items()}
