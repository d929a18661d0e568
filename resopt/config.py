"""
Configuration for the resource-array remapping pass.

Decides which classes are resource id holders and which deletion policy
(ClassRole) applies to each of them.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from resopt.errors import UnknownRole


class ClassRole(Enum):
    """How the rest of the program indexes into a holder's arrays."""
    SEQUENTIAL = "sequential"   # umbrella holder, arrays walked in order
    POSITIONAL = "positional"   # attribute-list holder, indexed by offset

    @classmethod
    def from_name(cls, name: str) -> ClassRole:
        try:
            return cls(name.lower())
        except ValueError:
            raise ValueError(
                f"unknown class role {name!r}, expected one of "
                f"{[r.value for r in cls]}"
            ) from None


# Lcom/example/R; and Lcom/example/R$styleable;
DEFAULT_HOLDER_PATTERN = r"^L(?:[^;]*/)?R(?:\$[A-Za-z_][A-Za-z0-9_]*)?;$"


@dataclass(frozen=True)
class RoleRule:
    """Assigns `role` to holder classes whose name matches `pattern`."""
    pattern: str
    role: ClassRole

    def matches(self, class_name: str) -> bool:
        return re.search(self.pattern, class_name) is not None


DEFAULT_ROLE_RULES = (
    RoleRule(r"\$styleable;$", ClassRole.POSITIONAL),
    RoleRule(r".", ClassRole.SEQUENTIAL),
)


@dataclass(frozen=True)
class ResourceConfig:
    """
    Pass configuration.

    Attributes:
        customized_r_classes: Holder classes known to carry extra,
            hand-written code in their static initializer. Only affects
            diagnostics.
        holder_pattern: Regex recognizing resource id holder classes.
        role_rules: Ordered rules; the first matching rule wins.
    """
    customized_r_classes: frozenset[str] = field(default_factory=frozenset)
    holder_pattern: str = DEFAULT_HOLDER_PATTERN
    role_rules: tuple[RoleRule, ...] = DEFAULT_ROLE_RULES

    def __post_init__(self):
        object.__setattr__(self, "customized_r_classes", frozenset(self.customized_r_classes))
        object.__setattr__(self, "role_rules", tuple(self.role_rules))
        try:
            re.compile(self.holder_pattern)
            for rule in self.role_rules:
                re.compile(rule.pattern)
        except re.error as e:
            raise ValueError(f"invalid class name pattern: {e}") from e

    def is_id_holder(self, class_name: str) -> bool:
        return re.search(self.holder_pattern, class_name) is not None

    def is_customized(self, class_name: str) -> bool:
        return class_name in self.customized_r_classes

    def role_for(self, class_name: str) -> Optional[ClassRole]:
        """
        Role of a class, or None when it is not an id holder at all.

        Raises:
            UnknownRole: the class is a holder but no rule covers it.
        """
        if not self.is_id_holder(class_name):
            return None
        for rule in self.role_rules:
            if rule.matches(class_name):
                return rule.role
        raise UnknownRole(class_name)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResourceConfig:
        """
        Build a config from parsed JSON.

        Keys (all optional): "customized_r_classes" (list of names),
        "holder_pattern" (regex), "role_rules" (list of
        {"pattern": ..., "role": "sequential" | "positional"}).
        """
        if not isinstance(data, dict):
            raise ValueError("resource config must be a JSON object")

        kwargs: dict[str, Any] = {}
        if "customized_r_classes" in data:
            kwargs["customized_r_classes"] = frozenset(data["customized_r_classes"])
        if "holder_pattern" in data:
            kwargs["holder_pattern"] = data["holder_pattern"]
        if "role_rules" in data:
            rules = []
            for entry in data["role_rules"]:
                try:
                    rules.append(RoleRule(entry["pattern"], ClassRole.from_name(entry["role"])))
                except (KeyError, TypeError) as e:
                    raise ValueError(f"malformed role rule: {entry!r}") from e
            kwargs["role_rules"] = tuple(rules)
        return cls(**kwargs)

    @classmethod
    def from_json(cls, path: str | Path) -> ResourceConfig:
        with open(path) as f:
            return cls.from_dict(json.load(f))
