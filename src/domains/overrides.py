"""
Playbook Overrides & Registry Snapshots

Admins may replace built-in playbooks with edited versions. Saving is
validate → persist → swap: readers always hold a complete, immutable
snapshot and never see a partially written override set. Concurrent
saves are last-writer-wins.
"""

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import ValidationError

from src.domains.registry import BUILTIN_IDS, BUILTIN_PLAYBOOKS, DEFAULT_DOMAIN_ID
from src.schemas.playbook import DomainPlaybook, PlaybookOverrideSet
from src.utils import settings
from src.utils.errors import OverrideValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# VALIDATION
# =============================================================================

def validate_playbooks(playbooks: list[DomainPlaybook | dict[str, Any]]) -> list[str]:
    """
    Check an override set against registry invariants.

    Returns:
        List of error strings (empty when valid)
    """
    errors: list[str] = []
    seen: set[str] = set()
    for index, entry in enumerate(playbooks):
        errors_before = len(errors)
        raw = entry.model_dump() if isinstance(entry, DomainPlaybook) else entry
        playbook_id = raw.get("id") if isinstance(raw, dict) else None
        label = playbook_id or f"#{index}"

        if not playbook_id:
            errors.append(f"{label}: missing id")
            continue
        if playbook_id in seen:
            errors.append(f"{label}: duplicate id")
        seen.add(playbook_id)
        if playbook_id not in BUILTIN_IDS:
            errors.append(f"{label}: unknown domain id")

        allowed = raw.get("allowed_effort_types") or []
        if not allowed:
            errors.append(f"{label}: allowed_effort_types must not be empty")
        outside = [str(key) for key in (raw.get("weights") or {}) if key not in allowed]
        if outside:
            errors.append(f"{label}: weights outside allowed effort types ({', '.join(outside)})")

        policy = raw.get("resource_policy") or {}
        max_resources = policy.get("max_resources", 3) if isinstance(policy, dict) else 3
        if not isinstance(max_resources, int) or not 0 <= max_resources <= 5:
            errors.append(f"{label}: resource_policy.max_resources must be within 0..5")

        if isinstance(entry, dict) and len(errors) == errors_before:
            try:
                DomainPlaybook.model_validate(entry)
            except ValidationError as e:
                errors.extend(f"{label}: {err['msg']}" for err in e.errors())
    return errors


# =============================================================================
# STORES
# =============================================================================

class OverrideStore:
    def read(self) -> PlaybookOverrideSet:
        raise NotImplementedError()

    def write(self, override_set: PlaybookOverrideSet) -> None:
        raise NotImplementedError()


class InMemoryOverrideStore(OverrideStore):
    def __init__(self, initial: PlaybookOverrideSet | None = None):
        self._data = initial or PlaybookOverrideSet()

    def read(self) -> PlaybookOverrideSet:
        return self._data

    def write(self, override_set: PlaybookOverrideSet) -> None:
        self._data = override_set


class JsonFileOverrideStore(OverrideStore):
    """
    JSON file store. Writes go to a temp file in the same directory and
    are moved into place with os.replace.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def read(self) -> PlaybookOverrideSet:
        if not self.path.exists():
            return PlaybookOverrideSet()
        with open(self.path, "r", encoding="utf-8") as f:
            return PlaybookOverrideSet.model_validate(json.load(f))

    def write(self, override_set: PlaybookOverrideSet) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".overrides-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(override_set.model_dump_json(indent=2))
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


# =============================================================================
# REGISTRY
# =============================================================================

@dataclass(frozen=True)
class PlaybookSnapshot:
    version: int
    playbooks: tuple[DomainPlaybook, ...]
    by_id: Mapping[str, DomainPlaybook]
    overridden: frozenset[str]

    def get(self, domain_id: str) -> DomainPlaybook:
        """Playbook for an id, falling back to the default domain."""
        return self.by_id.get(domain_id) or self.by_id[DEFAULT_DOMAIN_ID]

    def ids(self) -> list[str]:
        return [playbook.id for playbook in self.playbooks]

    def catalog(self) -> list[dict]:
        return [playbook.catalog_entry() for playbook in self.playbooks]


def _build_snapshot(version: int, overrides: list[DomainPlaybook]) -> PlaybookSnapshot:
    replaced = {playbook.id: playbook for playbook in overrides}
    merged = tuple(replaced.get(playbook.id, playbook) for playbook in BUILTIN_PLAYBOOKS)
    return PlaybookSnapshot(
        version=version,
        playbooks=merged,
        by_id=MappingProxyType({playbook.id: playbook for playbook in merged}),
        overridden=frozenset(replaced),
    )


class PlaybookRegistry:
    """
    Read-mostly registry of domain playbooks.
    """

    def __init__(self, store: OverrideStore | None = None):
        self.store = store or InMemoryOverrideStore()
        self._lock = threading.Lock()
        self._snapshot = _build_snapshot(1, self.store.read().playbooks)

    def snapshot(self) -> PlaybookSnapshot:
        return self._snapshot

    def get(self, domain_id: str) -> DomainPlaybook:
        return self._snapshot.get(domain_id)

    def save_overrides(self, playbooks: list[DomainPlaybook | dict[str, Any]]) -> PlaybookSnapshot:
        """
        Validate, persist and swap in a new override set.

        Raises:
            OverrideValidationError: the set breaks a registry invariant
        """
        errors = validate_playbooks(playbooks)
        if errors:
            raise OverrideValidationError(errors)
        parsed = [
            entry if isinstance(entry, DomainPlaybook) else DomainPlaybook.model_validate(entry)
            for entry in playbooks
        ]
        with self._lock:
            self.store.write(PlaybookOverrideSet(playbooks=parsed, saved_at=datetime.utcnow()))
            self._snapshot = _build_snapshot(self._snapshot.version + 1, parsed)
        logger.info(f"Playbook overrides saved: {sorted(p.id for p in parsed)} (v{self._snapshot.version})")
        return self._snapshot

    def reset_overrides(self) -> PlaybookSnapshot:
        with self._lock:
            self.store.write(PlaybookOverrideSet(saved_at=datetime.utcnow()))
            self._snapshot = _build_snapshot(self._snapshot.version + 1, [])
        logger.info(f"Playbook overrides reset (v{self._snapshot.version})")
        return self._snapshot


def get_playbook_registry(path: str | Path | None = None) -> PlaybookRegistry:
    """Registry backed by the JSON override file (DOMAIN_OVERRIDES_PATH by default)."""
    override_path = Path(path or settings.DOMAIN_OVERRIDES_PATH)
    return PlaybookRegistry(JsonFileOverrideStore(override_path))
