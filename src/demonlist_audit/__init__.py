"""Audit trail and point-in-time reconstruction for demonlist entities.

Every tracked update of a demon or record writes a sparse, actor-attributed
diff to an append-only log. The time machine derives historical orderings
from that log plus current live state, without stored snapshots.
"""

__version__ = "0.1.0"
