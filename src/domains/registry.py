"""
Built-in Domain Playbooks

Ten version-1 playbooks. Each one fixes the effort types a domain's
missions may use, their weights, four tone rules, three remediation rules
and the resource policy. Admin overrides (src/domains/overrides.py) may
replace entries but never add new ids.
"""

from src.schemas.base import ResourceProvider
from src.schemas.playbook import DomainPlaybook

DEFAULT_DOMAIN_ID = "personal_productivity"

_BASE_POLICY = {
    "allow_search": False,
    "max_resources": 3,
    "prefer_order": [
        ResourceProvider.LOECSEN,
        ResourceProvider.USER_PROVIDED,
        ResourceProvider.YOUTUBE,
        ResourceProvider.WEB,
    ],
    "language_fallback": True,
}


def _policy(*prefer_order: ResourceProvider) -> dict:
    if not prefer_order:
        return dict(_BASE_POLICY)
    return {**_BASE_POLICY, "prefer_order": list(prefer_order)}


_USER, _WEB, _YOUTUBE = ResourceProvider.USER_PROVIDED, ResourceProvider.WEB, ResourceProvider.YOUTUBE

_PLAYBOOK_DATA = [
    {
        "id": "language",
        "label": "Language learning",
        "profile": {
            "label": "Language acquisition",
            "intent": "Build practical language skills with balanced input/output.",
            "audience": "Learners building real-world language fluency.",
        },
        "allowed_effort_types": ["listen", "speak", "read", "write", "quiz", "practice", "review"],
        "weights": {"listen": 2, "speak": 2, "read": 1, "write": 1, "quiz": 1, "practice": 2, "review": 1},
        "tone_rules": [
            "Always include a real-life scenario context.",
            "Balance receptive and productive skills.",
            "Prefer short, repeatable drills over long lectures.",
            "Keep instructions concise and action-oriented.",
        ],
        "remediation_rules": [
            "If the user fails, switch to a simpler skill with more guidance.",
            "Reduce cognitive load by focusing on one skill at a time.",
            "Add extra repetition with gentle feedback.",
        ],
        "resource_policy": _policy(),
    },
    {
        "id": "fitness_sport",
        "label": "Fitness & sport",
        "profile": {
            "label": "Physical conditioning",
            "intent": "Improve form, consistency, and measurable fitness outcomes.",
            "audience": "People building healthy training habits.",
        },
        "allowed_effort_types": ["practice", "drill", "checklist", "reflection", "review"],
        "weights": {"practice": 3, "drill": 2, "checklist": 1, "reflection": 1, "review": 1},
        "tone_rules": [
            "Safety first: emphasize form and rest.",
            "Use short, repeatable sessions.",
            "Progress gradually; avoid overtraining.",
            "Include warm-up and cool-down reminders.",
        ],
        "remediation_rules": [
            "If skipped, offer a shorter alternative.",
            "Reduce intensity before increasing volume.",
            "Use checklists for accountability.",
        ],
        "resource_policy": _policy(_USER, _WEB, _YOUTUBE),
    },
    {
        "id": "professional_skills",
        "label": "Professional skills",
        "profile": {
            "label": "Workplace mastery",
            "intent": "Build practical professional skills with measurable outcomes.",
            "audience": "Professionals improving day-to-day performance.",
        },
        "allowed_effort_types": ["read", "write", "simulation", "reflection", "review", "practice"],
        "weights": {"read": 1, "write": 2, "simulation": 2, "reflection": 1, "review": 1, "practice": 2},
        "tone_rules": [
            "Keep missions tied to real workplace tasks.",
            "Favor tangible outputs (emails, docs, checklists).",
            "Use simulations to practice difficult scenarios.",
            "Keep timeboxes strict and focused.",
        ],
        "remediation_rules": [
            "If failing, simplify the deliverable and reattempt.",
            "Add an example or template before retry.",
            "Focus on one sub-skill per remediation.",
        ],
        "resource_policy": _policy(_USER, _WEB),
    },
    {
        "id": "business_growth",
        "label": "Business growth",
        "profile": {
            "label": "Business execution",
            "intent": "Drive growth via experiments, feedback, and iteration.",
            "audience": "Builders and operators.",
        },
        "allowed_effort_types": ["practice", "simulation", "reflection", "review", "write"],
        "weights": {"practice": 2, "simulation": 2, "reflection": 1, "review": 1, "write": 2},
        "tone_rules": [
            "Prefer small experiments over big bets.",
            "Always include a measurable outcome.",
            "Keep customer feedback in the loop.",
            "Document learnings after each mission.",
        ],
        "remediation_rules": [
            "If stuck, reduce scope and repeat the experiment.",
            "Add a checklist to ensure completion.",
            "Shift to reflection to extract insights.",
        ],
        "resource_policy": _policy(_USER, _WEB),
    },
    {
        "id": "wellbeing_meditation",
        "label": "Wellbeing & meditation",
        "profile": {
            "label": "Wellbeing practice",
            "intent": "Build calm, consistent wellbeing routines.",
            "audience": "People improving mental wellbeing.",
        },
        "allowed_effort_types": ["practice", "reflection", "review", "checklist"],
        "weights": {"practice": 3, "reflection": 2, "review": 1, "checklist": 1},
        "tone_rules": [
            "Keep sessions short and gentle.",
            "Emphasize breathing and presence.",
            "Avoid judgmental language.",
            "Encourage consistency over intensity.",
        ],
        "remediation_rules": [
            "If missed, offer a 2-minute alternative.",
            "Reduce friction with a single-step action.",
            "Focus on grounding before progression.",
        ],
        "resource_policy": _policy(_USER, _WEB),
    },
    {
        "id": "tech_coding",
        "label": "Tech & coding",
        "profile": {
            "label": "Software mastery",
            "intent": "Build hands-on coding skills with clear deliverables.",
            "audience": "Developers and learners.",
        },
        "allowed_effort_types": ["practice", "drill", "read", "write", "simulation", "review"],
        "weights": {"practice": 3, "drill": 2, "read": 1, "write": 1, "simulation": 1, "review": 1},
        "tone_rules": [
            "Favor hands-on tasks with concrete outputs.",
            "Limit scope to one concept per mission.",
            "Include a quick self-check at the end.",
            "Keep setups minimal and explicit.",
        ],
        "remediation_rules": [
            "If failing, simplify requirements and retry.",
            "Provide a smaller, focused exercise.",
            "Add a short recap before retrying.",
        ],
        "resource_policy": _policy(_USER, _WEB),
    },
    {
        "id": "music_practice",
        "label": "Music practice",
        "profile": {
            "label": "Musical skills",
            "intent": "Develop technique, ear, and consistency.",
            "audience": "Musicians at any level.",
        },
        "allowed_effort_types": ["practice", "drill", "listen", "review", "reflection"],
        "weights": {"practice": 3, "drill": 2, "listen": 1, "review": 1, "reflection": 1},
        "tone_rules": [
            "Short, focused repetitions are preferred.",
            "Include tempo or timing guidance.",
            "Keep practice structured and repeatable.",
            "Encourage recording and listening back.",
        ],
        "remediation_rules": [
            "Slow down tempo for remediation.",
            "Isolate one bar/phrase at a time.",
            "Shorten the practice goal.",
        ],
        "resource_policy": _policy(_USER, _YOUTUBE),
    },
    {
        "id": "craft_cooking_diy",
        "label": "Craft / cooking / DIY",
        "profile": {
            "label": "Hands-on skills",
            "intent": "Build tangible craft and DIY abilities safely.",
            "audience": "People learning practical skills.",
        },
        "allowed_effort_types": ["practice", "checklist", "review", "reflection", "watch"],
        "weights": {"practice": 2, "checklist": 2, "review": 1, "reflection": 1, "watch": 1},
        "tone_rules": [
            "Safety and preparation steps are mandatory.",
            "Use checklists for materials and steps.",
            "Prefer small, repeatable outcomes.",
            "Keep instructions very concrete.",
        ],
        "remediation_rules": [
            "If failed, break into smaller steps.",
            "Offer a simplified version of the task.",
            "Reconfirm safety prerequisites.",
        ],
        "resource_policy": _policy(_USER, _WEB, _YOUTUBE),
    },
    {
        "id": "academics_exam",
        "label": "Academics & exams",
        "profile": {
            "label": "Academic mastery",
            "intent": "Improve recall, understanding, and exam readiness.",
            "audience": "Students preparing for exams.",
        },
        "allowed_effort_types": ["read", "quiz", "practice", "review", "reflection"],
        "weights": {"read": 1, "quiz": 2, "practice": 2, "review": 1, "reflection": 1},
        "tone_rules": [
            "Include retrieval practice frequently.",
            "Keep summaries short and actionable.",
            "Use spaced review checkpoints.",
            "Avoid overly long reading missions.",
        ],
        "remediation_rules": [
            "Switch to a simpler quiz format.",
            "Provide a brief summary before retry.",
            "Add a quick practice drill.",
        ],
        "resource_policy": _policy(_USER, _WEB),
    },
    {
        "id": "personal_productivity",
        "label": "Personal productivity",
        "profile": {
            "label": "Execution & focus",
            "intent": "Build consistent execution and clarity.",
            "audience": "People improving their routines.",
        },
        "allowed_effort_types": ["practice", "checklist", "reflection", "review", "write"],
        "weights": {"practice": 2, "checklist": 2, "reflection": 1, "review": 1, "write": 1},
        "tone_rules": [
            "Use short, focused timeboxes.",
            "Make tasks observable and measurable.",
            "Favor planning + review loops.",
            "Encourage single-task focus.",
        ],
        "remediation_rules": [
            "If skipped, propose a 5-minute version.",
            "Reduce scope and remove blockers.",
            "Use a checklist to rebuild momentum.",
        ],
        "resource_policy": _policy(_USER, _WEB),
    },
]

BUILTIN_PLAYBOOKS: tuple[DomainPlaybook, ...] = tuple(
    DomainPlaybook.model_validate({**entry, "version": 1}) for entry in _PLAYBOOK_DATA
)

BUILTIN_IDS: tuple[str, ...] = tuple(playbook.id for playbook in BUILTIN_PLAYBOOKS)


def get_builtin_playbook(domain_id: str) -> DomainPlaybook | None:
    for playbook in BUILTIN_PLAYBOOKS:
        if playbook.id == domain_id:
            return playbook
    return None
