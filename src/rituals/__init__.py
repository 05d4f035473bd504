"""
Rituals Package

- models: SQLAlchemy tables
- store: snapshot, status, lock and event persistence
- lock: generation lock context manager
- service: generate / status / progress / lazy mission content
"""

from src.rituals.store import RitualStore, create_store_engine
from src.rituals.lock import ritual_lock
from src.rituals.service import RitualService

__all__ = [
    "RitualService",
    "RitualStore",
    "create_store_engine",
    "ritual_lock",
]
