from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from hireform.types import ApplicationStatus, FieldConfiguration, FieldState, FieldType


class InfoFieldCreateRequest(BaseModel):
    key: str
    label: str
    field_type: FieldType = "text"
    options: list[str] = Field(default_factory=list)
    description: str = ""
    validation: dict[str, Any] = Field(default_factory=dict)


class InfoFieldResponse(BaseModel):
    id: int
    key: str
    label: str
    field_type: str
    options: list[str]
    description: str
    validation: dict[str, Any]
    is_custom: bool


class JobFieldRequest(BaseModel):
    key: str
    state: FieldState = "optional"


class JobCreateRequest(BaseModel):
    title: str
    company: str = ""
    location: str = ""
    description: str = ""
    fields: list[JobFieldRequest] = Field(default_factory=list)


class JobResponse(BaseModel):
    id: int
    title: str
    company: str
    location: str
    description: str
    status: str
    applications_count: int


class RenderHint(BaseModel):
    kind: str
    choices: list[tuple[str, str]] = Field(default_factory=list)
    prefix: str = ""


class FieldConfigurationResponse(FieldConfiguration):
    render: RenderHint


class FieldStateRequest(BaseModel):
    state: FieldState


class FieldOrderRequest(BaseModel):
    field_ids: list[int]


class ProfileCreateRequest(BaseModel):
    user_id: str
    full_name: str = ""
    gender: str = ""
    phone: str = ""
    location: str = ""
    linkedin_url: str = ""
    bio: str = ""


class UploadResponse(BaseModel):
    url: str
    filename: str
    content_type: str
    size_bytes: int


class StatusUpdateRequest(BaseModel):
    status: ApplicationStatus
