"""Structured record of what a stacking run did."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .schema_coercer import CoercionWarning


class EventKind(Enum):
    TABLE_STACKED = "table_stacked"
    TABLE_COPIED = "table_copied"
    SIDECAR_COPIED = "sidecar_copied"
    POOL_SIZED = "pool_sized"
    TABLE_EMPTY = "table_empty"


@dataclass(frozen=True)
class RunEvent:
    kind: EventKind
    message: str
    table: Optional[str] = None
    path: Optional[Path] = None
    rows: Optional[int] = None
    expected_rows: Optional[int] = None


@dataclass
class RunSummary:
    """
    Everything a run reports back to its caller.

    The engine never prints; the CLI (or any other caller) renders this.
    """
    folder: Path
    output_dir: Path
    workers: int = 1
    events: List[RunEvent] = field(default_factory=list)
    coercion_warnings: List[CoercionWarning] = field(default_factory=list)
    elapsed_s: float = 0.0

    def add(self, kind: EventKind, message: str, **kwargs: Any) -> RunEvent:
        ev = RunEvent(kind=kind, message=message, **kwargs)
        self.events.append(ev)
        return ev

    def of_kind(self, kind: EventKind) -> List[RunEvent]:
        return [e for e in self.events if e.kind is kind]

    @property
    def tables_stacked(self) -> int:
        return len(self.of_kind(EventKind.TABLE_STACKED))

    @property
    def coercion_failures(self) -> int:
        return sum(w.count for w in self.coercion_warnings)

    @property
    def row_mismatches(self) -> List[RunEvent]:
        return [
            e for e in self.of_kind(EventKind.TABLE_STACKED)
            if e.expected_rows is not None and e.rows != e.expected_rows
        ]

    def messages(self) -> List[str]:
        """Sidecar, copy and empty-table notices, in the order they happened."""
        kinds = {EventKind.SIDECAR_COPIED, EventKind.TABLE_COPIED, EventKind.TABLE_EMPTY}
        return [e.message for e in self.events if e.kind in kinds]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "folder": str(self.folder),
            "output_dir": str(self.output_dir),
            "workers": self.workers,
            "tables_stacked": self.tables_stacked,
            "elapsed_s": round(self.elapsed_s, 3),
            "coercion_failures": self.coercion_failures,
            "events": [
                {
                    "kind": e.kind.value,
                    "message": e.message,
                    "table": e.table,
                    "path": str(e.path) if e.path else None,
                    "rows": e.rows,
                    "expected_rows": e.expected_rows,
                }
                for e in self.events
            ],
            "coercion_warnings": [
                {
                    "table": w.table,
                    "column": w.column,
                    "declared_type": w.declared_type,
                    "count": w.count,
                    "source_file": w.source_file,
                }
                for w in self.coercion_warnings
            ],
        }
