from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

FieldType = Literal[
    "text",
    "email",
    "url",
    "phone",
    "number",
    "select",
    "textarea",
    "date",
    "radio",
    "checkbox",
]
FieldState = Literal["mandatory", "optional", "off"]
ApplicationSource = Literal["referral", "job-board", "linkedin", "company-website", "other"]
ApplicationStatus = Literal[
    "PENDING",
    "UNDER_REVIEW",
    "SHORTLISTED",
    "ACCEPTED",
    "REJECTED",
    "WITHDRAWN",
]
AttachmentKind = Literal["resume", "cover_letter", "photo"]

FIELD_TYPES: frozenset[str] = frozenset(FieldType.__args__)
FIELD_STATES: frozenset[str] = frozenset(FieldState.__args__)
APPLICATION_SOURCES: tuple[str, ...] = ApplicationSource.__args__

# Keys owned by the fixed part of the form; the catalog may not reuse them.
RESUME_KEY = "resume"
SOURCE_KEY = "source"
COVER_LETTER_KEY = "coverLetter"
RESERVED_KEYS: frozenset[str] = frozenset({RESUME_KEY, SOURCE_KEY, COVER_LETTER_KEY})

PHOTO_KEY = "photo_profile"


class ValidationHints(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float | None = None
    max: float | None = None
    min_date: date | None = None
    max_date: date | None = None

    @model_validator(mode="after")
    def validate_ranges(self) -> "ValidationHints":
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("min must not exceed max")
        if self.min_date and self.max_date and self.min_date > self.max_date:
            raise ValueError("min_date must not be after max_date")
        return self

    @property
    def has_date_range(self) -> bool:
        return self.min_date is not None or self.max_date is not None


class FieldDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    key: str
    label: str
    field_type: FieldType = "text"
    options: tuple[str, ...] = ()
    description: str = ""
    validation_hints: ValidationHints | None = None

    @field_validator("key")
    @classmethod
    def validate_key(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("field key must not be empty")
        return value


class FieldConfiguration(BaseModel):
    id: int | None = None
    job_id: int
    field: FieldDescriptor
    state: FieldState
    sort_order: int = 0

    @property
    def key(self) -> str:
        return self.field.key

    @property
    def is_visible(self) -> bool:
        return self.state != "off"

    @property
    def is_required(self) -> bool:
        return self.state == "mandatory"


class ProfileSnapshot(BaseModel):
    id: int
    user_id: str
    full_name: str = ""
    gender: str = ""
    phone: str = ""
    location: str = ""
    linkedin_url: str = ""
    bio: str = ""
    resume_url: str | None = None
    avatar_url: str | None = None


class OtherInfoAnswer(BaseModel):
    id: int | None = None
    profile_id: int
    field_id: int
    answer: str = ""
    field_key: str = ""


class ProfileBundle(BaseModel):
    profile: ProfileSnapshot
    answers: list[OtherInfoAnswer] = Field(default_factory=list)


class AttachmentHandle(BaseModel):
    kind: AttachmentKind
    filename: str
    content_type: str
    size_bytes: int
    content: bytes = Field(default=b"", repr=False)
    preview_ref: str = ""
    uploaded_url: str | None = None


class OtherInfoUpsert(BaseModel):
    id: int | None = None
    field_id: int
    answer: str = ""


class ApplicationSnapshot(BaseModel):
    form_response: dict[str, str]
    cover_letter: str = ""
    resume_url: str
    source: ApplicationSource


class SubmissionPayload(BaseModel):
    application: ApplicationSnapshot
    profile_updates: dict[str, str | None] = Field(default_factory=dict)
    other_info_upserts: list[OtherInfoUpsert] = Field(default_factory=list)


class ApplicationRecord(BaseModel):
    id: int
    job_id: int
    applicant_id: int
    status: ApplicationStatus
    form_response: dict[str, str] = Field(default_factory=dict)
    cover_letter: str = ""
    resume_url: str = ""
    source: str = ""
    applied_at: datetime | None = None
    viewed_at: datetime | None = None
    status_updated_at: datetime | None = None
