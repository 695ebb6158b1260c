from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.models.entities import SubjectRecord

ActionType = Literal["NONE", "MASKED", "UNMASKED", "FLAGGED", "BLOCKED"]
OutputScope = Literal["INTERVENTIONS", "FULL"]
DirectionType = Literal["mask", "unmask"]


class SubjectPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    full_name: str | None = None
    # Kept as the raw stored string; the mapping builder parses it.
    date_of_birth: str | None = None
    subject_id: str | None = None
    institution: str | None = None
    grade_level: str | None = None
    guardian_name: str | None = None
    guardian_contact: str | None = None
    address: str | None = None

    def to_record(self) -> SubjectRecord:
        return SubjectRecord(
            full_name=self.full_name,
            date_of_birth=self.date_of_birth,
            subject_id=self.subject_id,
            institution=self.institution,
            grade_level=self.grade_level,
            guardian_name=self.guardian_name,
            guardian_contact=self.guardian_contact,
            address=self.address,
        )


class ContentItem(BaseModel):
    id: str
    text: str


class MaskRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    policy_id: str | None = None
    subject: SubjectPayload
    content: list[ContentItem] = Field(min_length=1)
    output_scope: OutputScope = "INTERVENTIONS"


class UnmaskRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    policy_id: str | None = None
    subject: SubjectPayload
    content: list[ContentItem] = Field(min_length=1)


class ValidateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    policy_id: str | None = None
    subject: SubjectPayload
    content: list[ContentItem] = Field(min_length=1)
    output_scope: OutputScope = "INTERVENTIONS"


class TransformRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    policy_id: str | None = None
    subject: SubjectPayload
    direction: DirectionType
    payload: Any


class ChatMessagePayload(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    policy_id: str | None = None
    model: str | None = None
    subject: SubjectPayload
    messages: list[ChatMessagePayload] = Field(min_length=1)
    output_scope: OutputScope = "INTERVENTIONS"


class OutputItem(BaseModel):
    id: str
    text: str
    replacements: int | None = None


class LeakFinding(BaseModel):
    item_id: str
    count: int
    offending_values: list[str] = Field(default_factory=list)


class UsageInfo(BaseModel):
    input_items: int
    input_chars: int
    output_items: int
    output_chars: int


class MaskResponse(BaseModel):
    action: ActionType
    policy_id: str
    placeholders_count: int
    outputs: list[OutputItem] = Field(default_factory=list)
    findings: list[LeakFinding] = Field(default_factory=list)
    usage: UsageInfo


class UnmaskResponse(BaseModel):
    action: ActionType
    replacements: int
    outputs: list[OutputItem] = Field(default_factory=list)
    usage: UsageInfo


class ValidateResponse(BaseModel):
    clean: bool
    findings: list[LeakFinding] = Field(default_factory=list)


class TransformResponse(BaseModel):
    direction: DirectionType
    payload: Any


class ChatResponse(BaseModel):
    action: ActionType
    policy_id: str
    masked_response: str = ""
    response: str = ""
    finish_reason: str | None = None
    findings: list[LeakFinding] = Field(default_factory=list)


class CapabilitiesResponse(BaseModel):
    service: str
    api_version: str
    placeholders: list[str]
    pronoun_placeholders: list[str]
    actions: list[ActionType]
    directions: list[DirectionType]
    output_scopes: list[OutputScope]
    policies: list[str]
