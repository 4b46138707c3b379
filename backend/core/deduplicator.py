"""
Deduplicator - Duplicate Value Repair Engine

Computes the minimal set of value rewrites that leaves every record with a
non-empty, unique value.

Policy (records must arrive sorted by (value, id)):
1. Missing values (empty after trimming) get a placeholder: pending-<id>
2. The first occurrence of a value is kept untouched
3. Later occurrences get the record id appended: <value>-<id>

The engine is pure: it never reads or writes storage. Persisting the
rewrites is the job of the repair task.
"""

from typing import Any, Callable, Iterable, List, Optional
from dataclasses import dataclass, field
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class RewriteReason(str, Enum):
    """Why a record receives a new value"""
    PLACEHOLDER = "placeholder"
    DUPLICATE = "duplicate"


class ConflictKind(str, Enum):
    """Why a synthesized value cannot be applied"""
    COLLISION = "collision"
    TOO_LONG = "too_long"


@dataclass(frozen=True)
class Record:
    """One row carrying an identifier and a mutable value"""
    id: Any
    value: Any


@dataclass(frozen=True)
class Rewrite:
    """A replacement value for a single record"""
    record_id: Any
    old_value: Any
    new_value: str
    reason: RewriteReason

    def to_dict(self) -> dict:
        return {
            "record_id": self.record_id,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "reason": self.reason.value
        }


@dataclass(frozen=True)
class Conflict:
    """A value that would break uniqueness or the column bound"""
    record_id: Any
    value: str
    kind: ConflictKind
    detail: str = ""

    def to_dict(self) -> dict:
        return {
            "record_id": self.record_id,
            "value": self.value,
            "kind": self.kind.value,
            "detail": self.detail
        }


@dataclass
class RepairPlan:
    """Result of one scan over the records"""
    scanned_count: int = 0
    rewrites: List[Rewrite] = field(default_factory=list)
    conflicts: List[Conflict] = field(default_factory=list)

    @property
    def placeholder_count(self) -> int:
        return sum(1 for r in self.rewrites if r.reason == RewriteReason.PLACEHOLDER)

    @property
    def duplicate_count(self) -> int:
        return sum(1 for r in self.rewrites if r.reason == RewriteReason.DUPLICATE)

    @property
    def is_applicable(self) -> bool:
        return not self.conflicts

    def to_dict(self, sample_size: Optional[int] = None) -> dict:
        rewrites = self.rewrites if sample_size is None else self.rewrites[:sample_size]
        return {
            "scanned_count": self.scanned_count,
            "rewrite_count": len(self.rewrites),
            "placeholder_count": self.placeholder_count,
            "duplicate_count": self.duplicate_count,
            "rewrites": [r.to_dict() for r in rewrites],
            "conflicts": [c.to_dict() for c in self.conflicts]
        }


# ===== Value helpers =====

def normalize_value(value: Any) -> str:
    """Trim surrounding whitespace; None becomes the empty string"""
    if value is None:
        return ""
    return str(value).strip()


def placeholder_for(record_id: Any, prefix: str = "pending") -> str:
    """Placeholder for a record whose value is missing"""
    return f"{prefix}-{record_id}"


def disambiguate(value: str, record_id: Any) -> str:
    """Disambiguated value for a later duplicate of `value`"""
    return f"{value}-{record_id}"


# ===== Engine =====

class DuplicateValueRepair:
    """
    Plans rewrites that make a column's values non-empty and unique

    Synthesized values are never altered to dodge a clash. Instead, clashes
    with existing values and values over `max_length` are reported as
    conflicts so the caller can refuse to apply the plan.

    Duplicate detection during the scan is exact (after trimming). The
    unique index may compare more loosely: MySQL's default collations
    ignore case and trailing spaces. With `case_insensitive` set, conflicts
    are checked on that folded key, so kept values that differ only in case
    are reported too instead of failing when the index is created.
    """

    def __init__(
        self,
        placeholder_prefix: str = "pending",
        max_length: Optional[int] = None,
        case_insensitive: bool = False,
        progress_interval: int = 500
    ):
        """
        Initialize repair engine

        Args:
            placeholder_prefix: Prefix for values synthesized for empty records
            max_length: Column length bound; longer synthesized values are conflicts
            case_insensitive: Check conflicts the way a case-insensitive collation compares
            progress_interval: Records between progress callback invocations
        """
        self.placeholder_prefix = placeholder_prefix
        self.max_length = max_length
        self.case_insensitive = case_insensitive
        self.progress_interval = progress_interval

    def plan(
        self,
        records: Iterable[Record],
        progress_callback: Optional[Callable] = None
    ) -> RepairPlan:
        """
        Scan records in the given order and compute rewrites

        Args:
            records: Records pre-sorted by (value, id)
            progress_callback: Optional callback function(processed, total, message)

        Returns:
            RepairPlan with rewrites in scan order and any conflicts
        """
        records = list(records)
        total = len(records)
        plan = RepairPlan(scanned_count=total)

        # value -> id of the record that keeps it
        assigned = {}

        for index, record in enumerate(records, start=1):
            value = normalize_value(record.value)

            if value == "":
                plan.rewrites.append(Rewrite(
                    record_id=record.id,
                    old_value=record.value,
                    new_value=placeholder_for(record.id, self.placeholder_prefix),
                    reason=RewriteReason.PLACEHOLDER
                ))
            elif value in assigned:
                plan.rewrites.append(Rewrite(
                    record_id=record.id,
                    old_value=record.value,
                    new_value=disambiguate(value, record.id),
                    reason=RewriteReason.DUPLICATE
                ))
            else:
                assigned[value] = record.id

            if progress_callback and (index % self.progress_interval == 0 or index == total):
                progress_callback(index, total, "Scanning values...")

        # Every first occurrence survives, so `assigned` is also the set of kept values
        plan.conflicts = self._find_conflicts(plan.rewrites, assigned)

        logger.info(
            f"Repair plan: {total} scanned, {len(plan.rewrites)} rewrites "
            f"({plan.placeholder_count} placeholders, {plan.duplicate_count} duplicates), "
            f"{len(plan.conflicts)} conflicts"
        )
        return plan

    def _key(self, value: str) -> str:
        if self.case_insensitive:
            return value.rstrip().casefold()
        return value

    def _find_conflicts(self, rewrites: List[Rewrite], kept: dict) -> List[Conflict]:
        conflicts = []
        kept_keys = {}
        synthesized = {}

        if self.case_insensitive:
            for value, record_id in kept.items():
                key = self._key(value)
                if key in kept_keys:
                    conflicts.append(Conflict(
                        record_id=record_id,
                        value=value,
                        kind=ConflictKind.COLLISION,
                        detail=f"differs only in case from the value of record {kept_keys[key]}"
                    ))
                else:
                    kept_keys[key] = record_id
        else:
            kept_keys = dict(kept)

        for rewrite in rewrites:
            new_value = rewrite.new_value
            key = self._key(new_value)

            if self.max_length is not None and len(new_value) > self.max_length:
                conflicts.append(Conflict(
                    record_id=rewrite.record_id,
                    value=new_value,
                    kind=ConflictKind.TOO_LONG,
                    detail=f"{len(new_value)} characters exceeds limit of {self.max_length}"
                ))

            if key in kept_keys:
                conflicts.append(Conflict(
                    record_id=rewrite.record_id,
                    value=new_value,
                    kind=ConflictKind.COLLISION,
                    detail=f"matches the value of record {kept_keys[key]}"
                ))
            elif key in synthesized:
                conflicts.append(Conflict(
                    record_id=rewrite.record_id,
                    value=new_value,
                    kind=ConflictKind.COLLISION,
                    detail=f"matches value synthesized for record {synthesized[key]}"
                ))
            else:
                synthesized[key] = rewrite.record_id

        if conflicts:
            logger.warning(f"⚠️  {len(conflicts)} value(s) cannot be applied safely")
        return conflicts


def sort_records(records: Iterable[Record]) -> List[Record]:
    """Order records by (value, id) the way the store does; None sorts first"""
    return sorted(
        records,
        key=lambda r: ("" if r.value is None else str(r.value), r.id)
    )
