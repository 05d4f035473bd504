"""
Domain Playbook Models

A playbook is a versioned, immutable policy bundle for one domain: which
effort types missions may use, how they are weighted, the tone rules the
generator must follow and how remediation content should differ.
"""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from src.schemas.base import EffortType, NonEmptyStr, ResourceProvider


class PlaybookProfile(BaseModel):
    label: NonEmptyStr
    intent: NonEmptyStr
    audience: str | None = None


class PlaybookResourcePolicy(BaseModel):
    allow_search: bool = False
    max_resources: int = Field(default=3, ge=0, le=5)
    prefer_order: list[ResourceProvider] = Field(
        default_factory=lambda: [
            ResourceProvider.LOECSEN,
            ResourceProvider.USER_PROVIDED,
            ResourceProvider.YOUTUBE,
            ResourceProvider.WEB,
        ]
    )
    language_fallback: bool = True


class DomainPlaybook(BaseModel):
    """
    Registry entry for a single domain.

    Invariant: every weighted effort type is an allowed effort type.
    """
    id: NonEmptyStr
    label: NonEmptyStr
    version: int = Field(ge=1)
    profile: PlaybookProfile
    allowed_effort_types: list[EffortType] = Field(min_length=1)
    weights: dict[EffortType, int] = Field(default_factory=dict)
    tone_rules: list[NonEmptyStr] = Field(default_factory=list)
    remediation_rules: list[NonEmptyStr] = Field(default_factory=list)
    resource_policy: PlaybookResourcePolicy = Field(default_factory=PlaybookResourcePolicy)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _weights_within_allowed(self) -> "DomainPlaybook":
        outside = [key.value for key in self.weights if key not in self.allowed_effort_types]
        if outside:
            raise ValueError(f"weights outside allowed effort types: {', '.join(outside)}")
        return self

    def catalog_entry(self) -> dict:
        """Compact JSON-ready form embedded in generation requests."""
        return self.model_dump(mode="json")


class PlaybookOverrideSet(BaseModel):
    """Admin-editable override set persisted by the override store."""
    playbooks: list[DomainPlaybook] = Field(default_factory=list)
    saved_at: datetime | None = None
