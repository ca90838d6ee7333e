"""Adapters — storage backends for demonlist-audit.

Contains:
- memory.py        — InMemoryUnitOfWork over append-only in-process logs
- database.py      — Async engine lifecycle for the SQL backend
- repositories.py  — SqlUnitOfWork over SQLAlchemy sessions
"""

__all__: list[str] = []
