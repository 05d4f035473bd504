"""
Generation Lock

Advisory per-ritual lock around plan generation. A second caller does not
wait; it gets GenerationInProgressError and polls the status instead.
"""

from contextlib import contextmanager
from typing import Iterator

from src.rituals.store import RitualStore
from src.utils.errors import GenerationInProgressError


@contextmanager
def ritual_lock(store: RitualStore, ritual_id: str) -> Iterator[str]:
    """
    Hold the generation lock for the duration of the block.

    Raises:
        GenerationInProgressError: the lock is held by another caller
    """
    owner = store.acquire_lock(ritual_id)
    if owner is None:
        raise GenerationInProgressError(ritual_id)
    try:
        yield owner
    finally:
        store.release_lock(ritual_id, owner)
