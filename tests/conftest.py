"""
Shared fixtures.

ScriptedProvider is a deterministic content generator double: each task
pops scripted responses in order and falls back to the offline dummy
provider once its script is exhausted.
"""

import json
from collections import defaultdict
from typing import Any

import pytest

from src.domains.overrides import PlaybookRegistry
from src.generation.planner import PlanGenerator
from src.generation.prompts import build_plan_request
from src.rituals.service import RitualService
from src.rituals.store import RitualStore
from src.schemas.base import DomainSource, ValidationMode
from src.schemas.intent import DomainContext, IntentHints
from src.utils.llm_client import ContentRequest, ContentTask, DummyLLMProvider, LLMProviderInterface, LLMResponse


class ScriptedProvider(LLMProviderInterface):
    """
    Script entries per task:
        dict / list  → ok response with that parsed payload
        str          → raw text, parsed as JSON when possible
        Exception    → raised from request()
    """

    def __init__(self, script: dict[ContentTask, list[Any]] | None = None):
        self.model_name = "scripted"
        self.script: dict[ContentTask, list[Any]] = defaultdict(list)
        for task, entries in (script or {}).items():
            self.script[task].extend(entries)
        self.fallback = DummyLLMProvider()
        self.calls: list[ContentRequest] = []

    def push(self, task: ContentTask, *entries: Any) -> None:
        self.script[task].extend(entries)

    def calls_for(self, task: ContentTask) -> list[ContentRequest]:
        return [call for call in self.calls if call.task == task]

    def request(self, req: ContentRequest) -> LLMResponse:
        self.calls.append(req)
        if not self.script[req.task]:
            return self.fallback.request(req)
        entry = self.script[req.task].pop(0)
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, str):
            return self._finish(req, entry)
        return LLMResponse(ok=True, text=json.dumps(entry), parsed=entry, provider_meta={"model": self.model_name})


def dummy_plan_payload(goal: str, days: int, domain_lock: DomainContext, registry: PlaybookRegistry, validation_mode: str = "self_report") -> dict:
    """Raw plan payload as the dummy generator would return it."""
    snapshot = registry.snapshot()
    request = build_plan_request(
        goal=goal,
        days=days,
        locale="en",
        playbooks=snapshot.catalog(),
        domain_lock=domain_lock,
        playbook=snapshot.get(domain_lock.domain_id),
        hints=IntentHints(validation_preference=ValidationMode(validation_mode)),
    )
    return DummyLLMProvider().request(request).parsed


@pytest.fixture
def registry() -> PlaybookRegistry:
    return PlaybookRegistry()


@pytest.fixture
def dummy_provider() -> DummyLLMProvider:
    return DummyLLMProvider()


@pytest.fixture
def scripted_provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def language_lock(registry) -> DomainContext:
    playbook = registry.get("language")
    return DomainContext(
        domain_id=playbook.id,
        domain_profile=playbook.profile.label,
        domain_version=str(playbook.version),
        source=DomainSource.HEURISTIC,
    )


@pytest.fixture
def productivity_lock(registry) -> DomainContext:
    playbook = registry.get("personal_productivity")
    return DomainContext(
        domain_id=playbook.id,
        domain_profile=playbook.profile.label,
        domain_version=str(playbook.version),
        source=DomainSource.FALLBACK,
    )


@pytest.fixture
def generated_plan(dummy_provider, registry, productivity_lock):
    """A validated 2-level plan (self_report, soft gating)."""
    return PlanGenerator(dummy_provider, registry).generate("Organize my week", 14, productivity_lock)


@pytest.fixture
def store() -> RitualStore:
    return RitualStore("sqlite://")


@pytest.fixture
def ritual_service(store, scripted_provider, registry) -> RitualService:
    return RitualService(store, scripted_provider, registry)


@pytest.fixture
def plan_payload(registry):
    """Factory for raw dummy plan payloads: plan_payload(goal, days, lock, validation_mode=...)."""

    def build(goal: str, days: int, domain_lock: DomainContext, validation_mode: str = "self_report") -> dict:
        return dummy_plan_payload(goal, days, domain_lock, registry, validation_mode)

    return build
