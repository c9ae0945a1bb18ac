from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

class RedactionPolicy(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    keep_dates: bool = Field(default=True, alias="keepDates", description="Leave DateTime entities visible")
    redact_locations_and_orgs: bool = Field(
        default=True,
        alias="redactLocationsAndOrgs",
        description="Also mask Location/Organization found by the entity-recognition pass",
    )
    allow_names: List[str] = Field(
        default_factory=list, alias="allowNames", description="Names to keep when tagged as Person"
    )
    redact_supplementary_persons: bool = Field(
        default=False,
        alias="redactSupplementaryPersons",
        description="Also mask Person found by the entity-recognition pass",
    )


class RedactionResult(BaseModel):
    redacted_text: str
    # Raw provider entities; malformed ones are kept so callers see what was skipped
    entities: List[Any] = Field(default_factory=list)
    # Disjoint runs actually masked, after merging
    masked_spans: int = 0


class AnonymizeRequest(RedactionPolicy):
    text: str = Field(default="", description="Raw transcript text")
    language: str = Field(default="en")


class AnonymizeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    request_id: str = Field(..., alias="requestId")
    took_ms: int = Field(..., alias="tookMs")
    redacted_text: str = Field(..., alias="redactedText")
    entities: List[Any] = Field(default_factory=list)


class NoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transcript: str = Field(..., description="Redacted transcript text (no raw PHI)")
    model: Optional[str] = Field(default=None, description="Model or Azure deployment; defaults to settings")
    system_prompt: Optional[str] = Field(default=None, alias="systemPrompt")
    tone: Optional[str] = None
    style: Optional[str] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None


class TokenUsage(BaseModel):
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


class CompletionResult(BaseModel):
    content: str
    model: Optional[str] = None
    usage: Optional[TokenUsage] = None
    latency_ms: Optional[int] = None


class NoteResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    request_id: str = Field(..., alias="requestId")
    took_ms: int = Field(..., alias="tookMs")
    content: str
    model: Optional[str] = None
    usage: Optional[TokenUsage] = None
    version: str = "v1"


class Prompt(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: str
    keyword: str
    content: str
    is_active: bool = Field(default=False, alias="isActive")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


class PromptCreate(BaseModel):
    type: str = ""
    keyword: str = ""
    content: str = ""


class PromptActivate(BaseModel):
    id: str = ""
    type: str = ""


class PromptUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    type: Optional[str] = None
    keyword: Optional[str] = None
    content: Optional[str] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")


class PromptDelete(BaseModel):
    id: str = ""
