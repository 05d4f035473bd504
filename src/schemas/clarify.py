"""
Clarify-Chips Contract

Strict shape returned by the "refine this goal" sub-flow. Any additional
field is rejected.
"""

import re
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from src.schemas.base import CacheTrace, PlanMarkers

_FORBIDDEN_LABEL_CHARS = re.compile(r"[<>`\[\]]")


class ChipOption(BaseModel):
    key: str = Field(pattern=r"^[a-z0-9_]{1,24}$")
    label: str = Field(min_length=1, max_length=26)

    model_config = {"extra": "forbid"}


class ChipSection(BaseModel):
    id: Literal["context", "comfort", "pace"]
    label: str = Field(min_length=1, max_length=32)
    type: Literal["single"] = "single"
    options: list[ChipOption] = Field(min_length=1, max_length=4)
    default: str

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def _check_label_and_default(self) -> "ChipSection":
        if _FORBIDDEN_LABEL_CHARS.search(self.label):
            raise ValueError("section label contains forbidden characters")
        if self.default not in {option.key for option in self.options}:
            raise ValueError("default must match an option key")
        return self


class ChipTrace(BaseModel):
    cache: CacheTrace
    hash: str = Field(min_length=8)
    timing_ms: int = Field(ge=0)
    judge: str = "clarify_chips"
    prompt_id: str = PlanMarkers.CLARIFY_CHIPS_PROMPT_VERSION

    model_config = {"extra": "forbid"}


class ClarifyChips(BaseModel):
    template_key: str = Field(pattern=r"^[a-z0-9_]{1,48}$")
    prompt_version: Literal["clarify_chips_v1"] = "clarify_chips_v1"
    lang: str = Field(min_length=2, max_length=8)
    days: int = Field(ge=1, le=365)
    sections: list[ChipSection] = Field(min_length=2, max_length=3)
    trace: ChipTrace

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def _unique_sections(self) -> "ClarifyChips":
        ids = [section.id for section in self.sections]
        if len(ids) != len(set(ids)):
            raise ValueError("section ids must be unique")
        return self
