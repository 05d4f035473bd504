"""
Content Generator Client

Provider abstraction over the external text-generation backend. The
pipeline only ever sends a ContentRequest and receives an LLMResponse;
every provider below speaks that contract.

Providers:
- "dummy"      deterministic, offline; used by tests and local runs
- "openrouter" OpenRouter.ai REST API via requests
- "openai"     openai SDK (optional install)
- "litellm"    litellm (optional install)
"""

import json
import logging
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional

import requests

from src.utils import settings
from src.utils.errors import ContentGeneratorError

logger = logging.getLogger(__name__)

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"


class ContentTask(str, Enum):
    """Request kinds the pipeline sends to the content generator."""
    PLAN = "plan"
    MISSION = "mission"
    CLARIFY_CHIPS = "clarify_chips"
    CONTROLLABILITY = "controllability"
    DOMAIN = "domain"
    MODERATION = "moderation"


@dataclass
class ContentRequest:
    task: ContentTask
    system_instructions: str
    user_payload: dict[str, Any]
    response_format: Literal["text", "json"] = "json"
    max_tokens: int = 2048
    timeout_seconds: float = settings.LLM_TIMEOUT_SECONDS

    def user_message(self) -> str:
        return json.dumps(self.user_payload, ensure_ascii=False)


@dataclass
class LLMResponse:
    ok: bool
    text: str
    parsed: Optional[Any] = None
    token_usage: Optional[dict[str, int]] = None
    provider_meta: dict[str, Any] = field(default_factory=dict)


def parse_json_payload(text: str | None) -> Any | None:
    """
    Parse a JSON object out of generator text.

    Strips markdown code fences; falls back to the outermost {...}
    substring. Returns None when nothing parses.
    """
    if not text:
        return None
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else cleaned[3:]
        if cleaned.endswith("```"):
            cleaned = cleaned[:-3]
        cleaned = cleaned.strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        return json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError:
        return None


class LLMProviderInterface:
    model_name: str = "unknown"

    def request(self, req: ContentRequest) -> LLMResponse:
        raise NotImplementedError()

    def _finish(self, req: ContentRequest, text: str, usage: dict[str, int] | None = None) -> LLMResponse:
        parsed = parse_json_payload(text) if req.response_format == "json" else None
        return LLMResponse(
            ok=bool(text and text.strip()),
            text=text or "",
            parsed=parsed,
            token_usage=usage,
            provider_meta={"model": self.model_name, "task": req.task.value},
        )


# =============================================================================
# DUMMY PROVIDER
# =============================================================================

_AXES = ["understand", "do", "perceive", "consolidate"]
_VERBS = ["Explore", "Practice", "Notice", "Review", "Apply", "Repeat", "Compare", "Plan", "Try", "Reflect on"]
_ANGLES = [
    "start from what you already know",
    "work in one short focused burst",
    "pay attention to how it feels",
    "look back at the previous session",
    "use a real situation from your week",
    "change one variable only",
    "teach it back in your own words",
    "time yourself and note the result",
]


def _clean_goal(goal: str) -> str:
    text = goal.split("→")[0].split("->")[0]
    for char in ".!?\"'«»“”":
        text = text.replace(char, " ")
    return " ".join(text.split())[:80] or "your goal"


class DummyLLMProvider(LLMProviderInterface):
    """
    Deterministic offline provider.

    Builds schema-valid outputs from the request payload, keyed by task.
    """

    def __init__(self) -> None:
        self.model_name = "dummy-local"
        self.calls: list[ContentRequest] = []

    def request(self, req: ContentRequest) -> LLMResponse:
        self.calls.append(req)
        builders = {
            ContentTask.PLAN: self._plan,
            ContentTask.MISSION: self._mission,
            ContentTask.CLARIFY_CHIPS: self._clarify_chips,
            ContentTask.CONTROLLABILITY: self._controllability,
            ContentTask.DOMAIN: self._domain,
            ContentTask.MODERATION: self._moderation,
        }
        builder = builders.get(req.task)
        if builder is None:
            return LLMResponse(ok=False, text="", provider_meta={"model": self.model_name})
        payload = builder(req.user_payload)
        return LLMResponse(
            ok=True,
            text=json.dumps(payload, ensure_ascii=False),
            parsed=payload,
            token_usage={"prompt_tokens": 0, "completion_tokens": 0},
            provider_meta={"model": self.model_name, "task": req.task.value},
        )

    def _plan(self, payload: dict[str, Any]) -> dict[str, Any]:
        goal = _clean_goal(payload.get("goal", ""))
        days = int(payload.get("days", 14))
        targets = payload.get("targets", {})
        level_count = int(targets.get("levels", 2))
        steps_per_level = int(targets.get("min_steps_per_level", 4))
        marker = payload.get("marker", "")
        lock = payload.get("domain_lock", {})
        playbook = payload.get("playbook", {})
        efforts = playbook.get("allowed_effort_types") or ["practice"]
        validation_mode = payload.get("validation_mode", "self_report")
        gating_mode = "none" if validation_mode == "presence" else "soft"

        competencies = [
            {
                "id": f"c{index}",
                "title": f"{goal} foundation {index}",
                "description": f"Build block {index} of {goal}.",
                "success_criteria": [f"Complete level {index} sessions"],
            }
            for index in range(1, level_count + 1)
        ]
        total = level_count * steps_per_level
        levels, stubs = [], []
        order = 0
        for level_index in range(1, level_count + 1):
            steps = []
            for step_index in range(1, steps_per_level + 1):
                order += 1
                verb = _VERBS[(order - 1) % len(_VERBS)]
                angle = _ANGLES[(order - 1) % len(_ANGLES)]
                effort = efforts[(order - 1) % len(efforts)]
                axis = _AXES[(step_index - 1) % len(_AXES)]
                step_id = f"l{level_index}s{step_index}"
                mission_id = f"m{level_index}_{step_index}"
                steps.append({
                    "id": step_id,
                    "title": f"{verb} {goal} ({level_index}.{step_index})",
                    "competency_id": f"c{level_index}",
                    "axis": axis,
                    "effort_type": effort,
                    "duration_minutes": 5 + (order % 6),
                    "required": True,
                    "mission_id": mission_id,
                })
                stubs.append({
                    "id": mission_id,
                    "step_id": step_id,
                    "level_index": level_index,
                    "step_index": step_index,
                    "day_index": max(1, min(days, 1 + (order - 1) * days // total)),
                    "order": order,
                    "title": f"{verb} session {order}",
                    "summary": f"{verb} {goal} in session {order}",
                    "unique_angle": f"{angle} (session {order})",
                    "action_verb": verb.split()[0].lower(),
                    "effort_type": effort,
                    "competency_id": f"c{level_index}",
                    "axis": axis,
                    "duration_minutes": 5 + (order % 6),
                    "resources": [],
                    "image_subject": None,
                })
            levels.append({"id": f"l{level_index}", "title": f"Level {level_index}", "steps": steps})

        return {
            "path": {
                "id": "path-1",
                "title": goal.capitalize(),
                "summary": f"{goal} through {total} short daily steps {marker}".strip(),
                "description": (
                    f"This path turns {goal} into short sessions over {days} days. "
                    "Each level builds on the previous one."
                ),
                "feasibility_note": (
                    "Ten minutes a day is enough for steady progress. "
                    "Missed days can be caught up without penalty."
                ),
                "domain_id": lock.get("domain_id", "personal_productivity"),
                "domain_profile": lock.get("domain_profile", "Personal productivity"),
                "domain_version": lock.get("domain_version", "1"),
                "ritual_mode": "progression",
                "validation_mode": validation_mode,
                "gating_mode": gating_mode,
                "competencies": competencies,
                "levels": levels,
            },
            "mission_stubs": stubs,
        }

    def _mission(self, payload: dict[str, Any]) -> dict[str, Any]:
        stub = payload.get("stub", {})
        title = stub.get("title", "Session")
        mode = payload.get("validation_mode", "self_report")
        blocks: list[dict[str, Any]] = [
            {"type": "text", "text": f"{title}: {stub.get('summary', 'focus on one small action')}."},
        ]
        if payload.get("remediation"):
            blocks[0]["text"] = f"Smaller version of {title}: do just the first part today."
        if mode == "automatic":
            blocks.append({
                "type": "quiz",
                "question": f"What is the focus of {title}?",
                "choices": [stub.get("unique_angle", "the main idea"), "Something unrelated"],
                "correct_index": 0,
            })
        elif mode == "self_report":
            blocks.append({"type": "checklist", "items": ["Set a timer", "Do the exercise", "Note one takeaway"]})
        else:
            blocks.append({"type": "text", "text": "Show up, breathe, and stay with it for the whole session."})
        return {"blocks": blocks}

    def _clarify_chips(self, payload: dict[str, Any]) -> dict[str, Any]:
        return {
            "template_key": f"gen_{payload.get('domain_id', 'generic')}"[:48],
            "sections": [
                {
                    "id": "context",
                    "label": "Where will you use it?",
                    "type": "single",
                    "options": [
                        {"key": "daily_life", "label": "Daily life"},
                        {"key": "work", "label": "Work"},
                        {"key": "hobby", "label": "Hobby"},
                    ],
                    "default": "daily_life",
                },
                {
                    "id": "comfort",
                    "label": "Your starting point",
                    "type": "single",
                    "options": [
                        {"key": "beginner", "label": "Beginner"},
                        {"key": "some_basics", "label": "Some basics"},
                        {"key": "confident", "label": "Confident"},
                    ],
                    "default": "beginner",
                },
            ],
        }

    def _controllability(self, payload: dict[str, Any]) -> dict[str, Any]:
        return {
            "level": "high",
            "reason_code": "self_directed",
            "confidence": 0.7,
            "rewritten_intent": payload.get("intent", ""),
            "angles": [],
        }

    def _domain(self, payload: dict[str, Any]) -> dict[str, Any]:
        return {"domain_id": payload.get("fallback_id", "personal_productivity")}

    def _moderation(self, payload: dict[str, Any]) -> dict[str, Any]:
        return {"flagged": False, "reason_code": None}


# =============================================================================
# REMOTE PROVIDERS
# =============================================================================

class OpenRouterProvider(LLMProviderInterface):
    """
    OpenRouter.ai REST client via requests.
    Sign up at https://openrouter.ai to get an API key.
    """

    def __init__(self, model: str = "openrouter/free", api_key: Optional[str] = None):
        self.api_key = api_key or os.getenv("OPENROUTER_API_KEY")
        if not self.api_key:
            raise ValueError("OPENROUTER_API_KEY not set. Get a key at https://openrouter.ai/keys")
        self.model = model
        self.model_name = f"openrouter:{model}"

    def request(self, req: ContentRequest) -> LLMResponse:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": req.system_instructions},
                {"role": "user", "content": req.user_message()},
            ],
            "max_tokens": req.max_tokens,
            "temperature": 0.2,
        }
        last_error: Exception | None = None
        for attempt in range(settings.LLM_MAX_RETRIES):
            try:
                resp = requests.post(OPENROUTER_URL, headers=headers, json=body, timeout=req.timeout_seconds)
                if resp.status_code == 429:
                    wait = min(int(resp.headers.get("Retry-After", 2)), 10)
                    logger.warning(f"OpenRouter rate-limited ({req.task.value}), retrying after {wait}s")
                    time.sleep(wait)
                    continue
                resp.raise_for_status()
                data = resp.json()
                text = data["choices"][0]["message"]["content"] or ""
                return self._finish(req, text, data.get("usage"))
            except (requests.RequestException, KeyError, IndexError, ValueError) as e:
                last_error = e
                logger.warning(f"OpenRouter call failed (attempt {attempt + 1}): {e}")
                time.sleep(settings.LLM_RETRY_BACKOFF ** attempt)
        raise ContentGeneratorError("openrouter", str(last_error or "rate limited"))


class OpenAIProvider(LLMProviderInterface):
    def __init__(self, api_key: Optional[str] = None, model: str = "gpt-4o-mini"):
        try:
            import openai
        except ImportError as e:
            raise RuntimeError("openai SDK not installed") from e
        self.client = openai.OpenAI(api_key=api_key or os.getenv("OPENAI_API_KEY"))
        self.model = model
        self.model_name = f"openai:{model}"

    def request(self, req: ContentRequest) -> LLMResponse:
        last_error: Exception | None = None
        for attempt in range(settings.LLM_MAX_RETRIES):
            try:
                kwargs: dict[str, Any] = {}
                if req.response_format == "json":
                    kwargs["response_format"] = {"type": "json_object"}
                resp = self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": req.system_instructions},
                        {"role": "user", "content": req.user_message()},
                    ],
                    max_tokens=req.max_tokens,
                    temperature=0.2,
                    timeout=req.timeout_seconds,
                    **kwargs,
                )
                usage = resp.usage.model_dump() if resp.usage else None
                return self._finish(req, resp.choices[0].message.content or "", usage)
            except Exception as e:
                last_error = e
                logger.warning("OpenAI call failed: %s. Retry %s", e, attempt)
                time.sleep(settings.LLM_RETRY_BACKOFF ** attempt)
        raise ContentGeneratorError("openai", str(last_error))


class LiteLLMProvider(LLMProviderInterface):
    def __init__(self, model: str = "gpt-4o-mini"):
        try:
            import litellm  # noqa: F401
        except ImportError as e:
            raise RuntimeError("litellm is not installed") from e
        self.model = model
        self.model_name = f"litellm:{model}"

    def request(self, req: ContentRequest) -> LLMResponse:
        import litellm
        last_error: Exception | None = None
        for attempt in range(settings.LLM_MAX_RETRIES):
            try:
                resp = litellm.completion(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": req.system_instructions},
                        {"role": "user", "content": req.user_message()},
                    ],
                    max_tokens=req.max_tokens,
                    timeout=req.timeout_seconds,
                )
                usage = getattr(resp, "usage", None)
                usage_dict = dict(usage) if usage else None
                return self._finish(req, resp.choices[0].message.content or "", usage_dict)
            except Exception as e:
                last_error = e
                logger.warning("litellm call failed attempt %s: %s", attempt, e)
                time.sleep(settings.LLM_RETRY_BACKOFF ** attempt)
        raise ContentGeneratorError("litellm", str(last_error))


# Factory
def get_llm_provider(config: Optional[dict[str, Any]] = None) -> LLMProviderInterface:
    config = config or settings.llm_config()
    provider = config.get("provider") or settings.LLM_PROVIDER
    if provider == "dummy":
        return DummyLLMProvider()
    if provider == "openrouter":
        return OpenRouterProvider(model=config.get("model", settings.LLM_MODEL), api_key=config.get("api_key"))
    if provider == "openai":
        return OpenAIProvider(api_key=config.get("api_key"), model=config.get("model", "gpt-4o-mini"))
    if provider == "litellm":
        return LiteLLMProvider(model=config.get("model", settings.LLM_MODEL))
    logger.warning(f"Unknown LLM provider '{provider}', using dummy")
    return DummyLLMProvider()
