"""
Domain Playbooks Package

- registry: the ten built-in playbooks
- overrides: admin override store and versioned registry snapshots
- classifier: keyword/generator domain resolution and intent enrichment
- suggestions: clarification detection and reformulation paths
"""

from src.domains.registry import BUILTIN_PLAYBOOKS, DEFAULT_DOMAIN_ID, get_builtin_playbook
from src.domains.overrides import (
    InMemoryOverrideStore,
    JsonFileOverrideStore,
    PlaybookRegistry,
    PlaybookSnapshot,
    get_playbook_registry,
    validate_playbooks,
)
from src.domains.classifier import DomainClassifier, enrich_intention, infer_domain_id
from src.domains.suggestions import build_clarification_suggestions, needs_clarification

__all__ = [
    # Registry
    "BUILTIN_PLAYBOOKS",
    "DEFAULT_DOMAIN_ID",
    "get_builtin_playbook",
    # Overrides
    "InMemoryOverrideStore",
    "JsonFileOverrideStore",
    "PlaybookRegistry",
    "PlaybookSnapshot",
    "get_playbook_registry",
    "validate_playbooks",
    # Classifier
    "DomainClassifier",
    "enrich_intention",
    "infer_domain_id",
    # Suggestions
    "build_clarification_suggestions",
    "needs_clarification",
]
