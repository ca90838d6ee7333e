"""Demonlist time machine: audit logs and point-in-time reconstruction.

Every tracked update appends one sparse ModificationEntry, every creation
one AdditionEntry. The ReconstructionEngine derives historical orderings
from those logs plus current live state.
"""

from __future__ import annotations

from demonlist_audit.time_machine.events import (
    AdditionEntry,
    HistoricalEntry,
    ModificationEntry,
    Movement,
)
from demonlist_audit.time_machine.diff import build_modification, compute_diffs
from demonlist_audit.time_machine.event_store import AdditionLog, ModificationLog
from demonlist_audit.time_machine.reconstructor import ReconstructionEngine, reconstruct

__all__ = [
    "AdditionEntry",
    "AdditionLog",
    "HistoricalEntry",
    "ModificationEntry",
    "ModificationLog",
    "Movement",
    "ReconstructionEngine",
    "build_modification",
    "compute_diffs",
    "reconstruct",
]
