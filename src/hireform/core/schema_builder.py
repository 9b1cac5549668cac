"""Build an executable validation contract from a job's visible fields.

``build_application_schema`` is a pure function: it composes a fresh pydantic
model every time it is called, so toggling a field between ``mandatory`` and
``optional`` never leaves stale rules behind.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    AnyUrl,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    create_model,
)
from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError

from hireform.core.catalog import ResolvedForm
from hireform.errors import FormValidationError
from hireform.types import (
    APPLICATION_SOURCES,
    COVER_LETTER_KEY,
    RESUME_KEY,
    SOURCE_KEY,
    AttachmentHandle,
    FieldConfiguration,
    FieldDescriptor,
)

COVER_LETTER_MIN_LENGTH = 50
PHONE_PATTERN = re.compile(r"^\+?[\d\s-]+$")

_URL_ADAPTER: TypeAdapter[AnyUrl] = TypeAdapter(AnyUrl)

Check = Callable[[str], str]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _coerce_text(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


def _required(label: str) -> Check:
    def check(value: str) -> str:
        if _is_blank(value):
            raise PydanticCustomError("required", "{label} is required", {"label": label})
        return value

    return check


def _email_format(value: str) -> str:
    candidate = value.strip()
    try:
        _, address = validate_email(candidate)
    except ValueError:
        raise PydanticCustomError("email", "Invalid email address") from None
    # validate_email also accepts "Name <address>"; only a bare address is an answer
    if address.casefold() != candidate.casefold():
        raise PydanticCustomError("email", "Invalid email address")
    return value


def _phone_format(value: str) -> str:
    if not PHONE_PATTERN.match(value):
        raise PydanticCustomError("phone", "Invalid phone number")
    return value


def _url_format(value: str) -> str:
    try:
        _URL_ADAPTER.validate_python(value.strip())
    except ValidationError:
        raise PydanticCustomError("url", "Must be a valid URL") from None
    return value


def _number_format(descriptor: FieldDescriptor) -> Check:
    hints = descriptor.validation_hints
    label = descriptor.label

    def check(value: str) -> str:
        try:
            number = float(value)
        except ValueError:
            raise PydanticCustomError("number", "{label} must be a number", {"label": label}) from None
        if not math.isfinite(number):
            raise PydanticCustomError("number", "{label} must be a number", {"label": label})
        if hints and hints.min is not None and number < hints.min:
            raise PydanticCustomError(
                "number_min", "{label} must be at least {min}", {"label": label, "min": f"{hints.min:g}"}
            )
        if hints and hints.max is not None and number > hints.max:
            raise PydanticCustomError(
                "number_max", "{label} must be at most {max}", {"label": label, "max": f"{hints.max:g}"}
            )
        return value

    return check


def _date_range(descriptor: FieldDescriptor) -> Check:
    hints = descriptor.validation_hints
    label = descriptor.label

    def check(value: str) -> str:
        try:
            parsed = date.fromisoformat(value.strip())
        except ValueError:
            raise PydanticCustomError(
                "date", "{label} must be a valid date (YYYY-MM-DD)", {"label": label}
            ) from None
        if hints and hints.min_date and parsed < hints.min_date:
            raise PydanticCustomError(
                "date_min",
                "{label} must be on or after {min_date}",
                {"label": label, "min_date": hints.min_date.isoformat()},
            )
        if hints and hints.max_date and parsed > hints.max_date:
            raise PydanticCustomError(
                "date_max",
                "{label} must be on or before {max_date}",
                {"label": label, "max_date": hints.max_date.isoformat()},
            )
        return value

    return check


def _one_of(descriptor: FieldDescriptor) -> Check:
    options = tuple(descriptor.options)
    label = descriptor.label

    def check(value: str) -> str:
        if value not in options:
            raise PydanticCustomError(
                "one_of",
                "{label} must be one of: {options}",
                {"label": label, "options": ", ".join(options)},
            )
        return value

    return check


def format_checks(descriptor: FieldDescriptor) -> list[Check]:
    """Format rules for a field, resolved by key first and field type second."""
    hints = descriptor.validation_hints
    key = descriptor.key

    if key == "email":
        return [_email_format]
    if key == "phone_number":
        return [_phone_format]
    if key == "linkedin_url":
        return [_url_format]
    if key == "date_of_birth":
        return [_date_range(descriptor)] if hints and hints.has_date_range else []

    field_type = descriptor.field_type
    if field_type == "email":
        return [_email_format]
    if field_type == "phone":
        return [_phone_format]
    if field_type == "url":
        return [_url_format]
    if field_type == "number":
        return [_number_format(descriptor)]
    if field_type == "date" and hints and hints.has_date_range:
        return [_date_range(descriptor)]
    if field_type in {"select", "radio"} and descriptor.options:
        return [_one_of(descriptor)]
    return []


def field_validator_for(descriptor: FieldDescriptor, *, required: bool) -> Check:
    checks = format_checks(descriptor)

    if required:
        pipeline = [_required(descriptor.label), *checks]

        def strict(value: str) -> str:
            for check in pipeline:
                value = check(value)
            return value

        return strict

    def relaxed(value: str) -> str:
        if _is_blank(value):
            return value
        for check in checks:
            value = check(value)
        return value

    return relaxed


def _resume_check(value: Any) -> Any:
    if isinstance(value, AttachmentHandle):
        return value
    if isinstance(value, str) and value.strip():
        return value
    raise PydanticCustomError("required", "Resume is required")


def _source_check(value: Any) -> Any:
    if _is_blank(value):
        raise PydanticCustomError("required", "Source is required")
    if value not in APPLICATION_SOURCES:
        raise PydanticCustomError(
            "source", "Source must be one of: {options}", {"options": ", ".join(APPLICATION_SOURCES)}
        )
    return value


def _is_stored_cover_letter(value: str, file_url_prefix: str) -> bool:
    marker = f"{file_url_prefix.rstrip('/')}/cover_letter/"
    if not value.startswith(marker):
        return False
    name = value[len(marker):]
    return bool(name) and "/" not in name and not any(char.isspace() for char in name)


def _cover_letter_check(min_length: int, file_url_prefix: str | None = None) -> Callable[[Any], Any]:
    def check(value: Any) -> Any:
        if isinstance(value, AttachmentHandle) or _is_blank(value):
            return value
        if not isinstance(value, str):
            raise PydanticCustomError("cover_letter", "Cover letter must be text or a file")
        # an uploaded cover letter travels as its stored URL
        if file_url_prefix and _is_stored_cover_letter(value, file_url_prefix):
            return value
        if len(value.strip()) < min_length:
            raise PydanticCustomError(
                "cover_letter_min",
                "Cover letter must be at least {min_length} characters",
                {"min_length": min_length},
            )
        return value

    return check


def _photo_check(label: str, required: bool) -> Callable[[Any], Any]:
    def check(value: Any) -> Any:
        if isinstance(value, AttachmentHandle):
            return value
        if isinstance(value, str) and value.strip():
            return value
        if required:
            raise PydanticCustomError("required", "{label} is required", {"label": label})
        return None

    return check


@dataclass(slots=True)
class ValidationResult:
    values: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


class ApplicationSchema:
    """A composed validator for one job's application form."""

    def __init__(
        self,
        model: type[BaseModel],
        aliases: dict[str, str],
        requirements: dict[str, str],
    ):
        self._model = model
        self._aliases = aliases
        self._requirements = requirements

    @property
    def keys(self) -> list[str]:
        return list(self._aliases.values())

    def requirement(self, key: str) -> str:
        return self._requirements[key]

    def __contains__(self, key: object) -> bool:
        return key in self._requirements

    def validate(self, values: Mapping[str, Any]) -> ValidationResult:
        try:
            instance = self._model.model_validate(dict(values))
        except ValidationError as exc:
            return ValidationResult(errors=_errors_by_key(exc))

        cleaned = {alias: getattr(instance, name) for name, alias in self._aliases.items()}
        return ValidationResult(values=cleaned)

    def validate_or_raise(self, values: Mapping[str, Any]) -> dict[str, Any]:
        result = self.validate(values)
        if not result.ok:
            raise FormValidationError(result.errors)
        return result.values


def _errors_by_key(exc: ValidationError) -> dict[str, str]:
    errors: dict[str, str] = {}
    for item in exc.errors():
        loc = item.get("loc") or ("__root__",)
        key = str(loc[0])
        errors.setdefault(key, item["msg"])
    return errors


def _text_field(check: Check) -> Any:
    return Annotated[str, BeforeValidator(_coerce_text), AfterValidator(check)]


def build_application_schema(
    form: ResolvedForm,
    *,
    cover_letter_min_length: int = COVER_LETTER_MIN_LENGTH,
    file_url_prefix: str | None = None,
) -> ApplicationSchema:
    definitions: dict[str, Any] = {}
    aliases: dict[str, str] = {}
    requirements: dict[str, str] = {}

    def add(key: str, annotation: Any, default: Any, requirement: str) -> None:
        name = f"field_{len(aliases)}"
        definitions[name] = (annotation, Field(default=default, alias=key, validate_default=True))
        aliases[name] = key
        requirements[key] = requirement

    config: FieldConfiguration
    for config in form.generic_fields:
        check = field_validator_for(config.field, required=config.is_required)
        add(config.key, _text_field(check), "", config.state)

    if form.photo_field is not None:
        photo = form.photo_field
        annotation = Annotated[Any, AfterValidator(_photo_check(photo.field.label, photo.is_required))]
        add(photo.key, annotation, None, photo.state)

    add(RESUME_KEY, Annotated[Any, AfterValidator(_resume_check)], None, "mandatory")
    add(SOURCE_KEY, Annotated[Any, AfterValidator(_source_check)], None, "mandatory")
    add(
        COVER_LETTER_KEY,
        Annotated[
            Any,
            BeforeValidator(_coerce_text),
            AfterValidator(_cover_letter_check(cover_letter_min_length, file_url_prefix)),
        ],
        "",
        "optional",
    )

    model = create_model(
        f"ApplicationForm{form.job_id}",
        __config__=ConfigDict(extra="ignore", populate_by_name=False),
        **definitions,
    )
    return ApplicationSchema(model=model, aliases=aliases, requirements=requirements)
