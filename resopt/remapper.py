"""
resopt/remapper.py

Pass driver: rewrites the int arrays of every resource id holder class after
resource ids were renumbered or deleted.

For each holder class:
1. Scan the static initializer into array groups
2. Plan every group with the strategy of the class's role
3. Only when the whole class validated, write back the new payloads and
   declared sizes

A class with a malformed initializer is skipped and reported; the rest of the
pass carries on. A holder class without a role is a configuration error and
aborts the pass before anything is mutated.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Optional

from resopt import payload
from resopt.config import ClassRole, ResourceConfig
from resopt.errors import MalformedInitializer, MalformedPayload
from resopt.ids import RemapTable, group_by_type
from resopt.ir import DexClass, DexStore, Instruction, MethodCode, iter_store_classes
from resopt.scanner import ArrayGroup, ArrayGroupScanner
from resopt.strategies import RewritePlan, strategy_for

log = logging.getLogger(__name__)

COUNTERS = (
    "classes", "classes_rewritten", "classes_failed", "groups", "discarded",
    "kept", "deleted", "remapped", "zeroed", "collisions",
)


@dataclass
class ClassReport:
    """Outcome of processing one holder class."""
    class_name: str
    role: ClassRole
    groups: int = 0
    discarded: int = 0
    kept: int = 0
    deleted: int = 0
    remapped: int = 0
    zeroed: int = 0
    collisions: int = 0
    rewritten: bool = False
    error: Optional[str] = None

    def record(self, plan: RewritePlan) -> None:
        self.groups += 1
        self.kept += plan.kept
        self.deleted += plan.deleted
        self.remapped += plan.remapped
        self.zeroed += plan.zeroed
        self.collisions += plan.collisions


@dataclass
class PassStats:
    """
    Aggregated pass statistics.

    `collect` and `merge` only sum counters and sort the per-class lists,
    so the result is the same whatever order the classes finished in.
    """
    classes: int = 0
    classes_rewritten: int = 0
    classes_failed: int = 0
    groups: int = 0
    discarded: int = 0
    kept: int = 0
    deleted: int = 0
    remapped: int = 0
    zeroed: int = 0
    collisions: int = 0
    reports: list[ClassReport] = field(default_factory=list)
    failures: list[tuple[str, str]] = field(default_factory=list)

    @classmethod
    def of(cls, report: ClassReport) -> PassStats:
        return cls(
            classes=1,
            classes_rewritten=int(report.rewritten),
            classes_failed=int(report.error is not None),
            groups=report.groups,
            discarded=report.discarded,
            kept=report.kept,
            deleted=report.deleted,
            remapped=report.remapped,
            zeroed=report.zeroed,
            collisions=report.collisions,
            reports=[report],
            failures=[(report.class_name, report.error)] if report.error is not None else [],
        )

    @classmethod
    def collect(cls, reports: Iterable[ClassReport]) -> PassStats:
        """Sum the reports of a whole pass, sorting the lists once."""
        stats = cls()
        for report in reports:
            part = cls.of(report)
            for name in COUNTERS:
                setattr(stats, name, getattr(stats, name) + getattr(part, name))
            stats.reports.extend(part.reports)
            stats.failures.extend(part.failures)
        stats.reports.sort(key=lambda r: r.class_name)
        stats.failures.sort()
        return stats

    def merge(self, other: PassStats) -> PassStats:
        return PassStats(
            classes=self.classes + other.classes,
            classes_rewritten=self.classes_rewritten + other.classes_rewritten,
            classes_failed=self.classes_failed + other.classes_failed,
            groups=self.groups + other.groups,
            discarded=self.discarded + other.discarded,
            kept=self.kept + other.kept,
            deleted=self.deleted + other.deleted,
            remapped=self.remapped + other.remapped,
            zeroed=self.zeroed + other.zeroed,
            collisions=self.collisions + other.collisions,
            reports=sorted(self.reports + other.reports, key=lambda r: r.class_name),
            failures=sorted(self.failures + other.failures),
        )

    def as_dict(self) -> dict:
        return {name: getattr(self, name) for name in COUNTERS}


class ResourceArrayRemapper:
    """
    Remaps the resource arrays of all holder classes in a set of stores.

    Args:
        config: Holder recognition and role rules
        remap_table: Shared old id -> new id table, never mutated
        jobs: Worker threads; classes are independent so any number works
    """

    def __init__(self, config: ResourceConfig, remap_table: RemapTable, jobs: int = 1):
        if jobs < 1:
            raise ValueError(f"jobs must be at least 1, got {jobs}")
        self.config = config
        self.remap_table = remap_table
        self.jobs = jobs

    def run(self, stores: Iterable[DexStore]) -> PassStats:
        """
        Process every holder class of `stores` in place.

        Raises:
            UnknownRole: a holder class matches no role rule
        """
        work = self.classify(stores)
        log.info("Remapping arrays of %d resource holder classes", len(work))

        if self.jobs > 1 and len(work) > 1:
            with ThreadPoolExecutor(max_workers=self.jobs) as ex:
                reports = list(ex.map(lambda item: self.process_class(*item), work))
        else:
            reports = [self.process_class(cls, role) for cls, role in work]

        stats = PassStats.collect(reports)
        log.info(
            "Remapped %d groups in %d classes: %d kept, %d deleted (%d zeroed), %d remapped",
            stats.groups, stats.classes_rewritten, stats.kept,
            stats.deleted, stats.zeroed, stats.remapped,
        )
        for class_name, error in stats.failures:
            log.error("Skipped %s: %s", class_name, error)
        return stats

    def classify(self, stores: Iterable[DexStore]) -> list[tuple[DexClass, ClassRole]]:
        """Holder classes with their roles, in store order."""
        work = []
        for cls in iter_store_classes(stores):
            role = self.config.role_for(cls.name)
            if role is not None:
                work.append((cls, role))
        return work

    def process_class(self, cls: DexClass, role: ClassRole) -> ClassReport:
        """Rewrite one class; structural problems end up in the report."""
        report = ClassReport(cls.name, role)

        clinit = cls.get_clinit()
        code = clinit.get_code() if clinit is not None else None
        if code is None:
            log.debug("%s has no static initializer code", cls.name)
            return report

        try:
            planned = self.plan_class(cls, role, code, report)
        except MalformedInitializer as e:
            report.error = str(e)
            return report
        except MalformedPayload as e:
            report.error = f"malformed array payload: {e}"
            return report

        for group, plan, data in planned:
            self.apply_plan(code, group, plan, data)
            report.record(plan)
            log.debug(
                "%s: %s -> %d elements (%d deleted, %d remapped)",
                cls.name, group.describe(), plan.new_size, plan.deleted, plan.remapped,
            )
        report.rewritten = bool(planned)

        log.info(
            "%s (%s): %d groups, %d kept, %d deleted",
            cls.name, role.value, report.groups, report.kept, report.deleted,
        )
        return report

    def plan_class(
        self,
        cls: DexClass,
        role: ClassRole,
        code: MethodCode,
        report: ClassReport,
    ) -> list[tuple[ArrayGroup, RewritePlan, bytes]]:
        """Scan and plan every group without touching the code."""
        scanner = ArrayGroupScanner(cls.name, self.config.is_customized(cls.name))
        result = scanner.scan(code)
        report.discarded = result.discarded

        strategy = strategy_for(role)
        planned = []
        for group in result.groups:
            by_type = group_by_type(group.ids)
            if role == ClassRole.SEQUENTIAL and len(by_type) > 1:
                log.debug(
                    "%s: %s mixes resource types %s",
                    cls.name, group.describe(),
                    ", ".join(f"0x{t:02x}" for t in by_type),
                )
            plan = strategy.plan(group, self.remap_table)
            if plan.collisions:
                log.debug(
                    "%s: %s maps %d distinct ids onto ids already present",
                    cls.name, group.describe(), plan.collisions,
                )
            planned.append((group, plan, payload.encode(plan.values)))
        return planned

    @staticmethod
    def apply_plan(
        code: MethodCode,
        group: ArrayGroup,
        plan: RewritePlan,
        data: bytes,
    ) -> None:
        """
        Write a plan back into `code`.

        A size definer whose register is also read elsewhere keeps its
        literal; a fresh const is inserted in front of the allocation and
        the old value restored behind it when later readers need it.
        """
        group.fill.set_data(data)

        old_size = group.declared_size
        if plan.new_size == old_size:
            return
        if not group.shared_size_definer:
            group.size_definer.set_literal(plan.new_size)
            return

        size_reg = group.size_register
        code.insert_before(group.allocation, Instruction.const(size_reg, plan.new_size))
        if group.size_read_after:
            code.insert_after(group.allocation, Instruction.const(size_reg, old_size))


def remap_resource_class_arrays(
    stores: Iterable[DexStore],
    config: ResourceConfig,
    remap_table: RemapTable,
    jobs: int = 1,
) -> PassStats:
    """Rewrite the resource arrays of every holder class in `stores`."""
    return ResourceArrayRemapper(config, remap_table, jobs=jobs).run(stores)
