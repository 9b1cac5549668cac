"""Field catalog and per-job configuration resolution.

The catalog is the shared registry of reusable field descriptors. A job's
form is the list of its configurations, ordered by ``sort_order``, with
``off`` entries kept for the recruiter view but hidden from rendering and
validation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

from hireform.errors import CatalogError, ConfigurationError, EmptyFormError
from hireform.types import (
    FIELD_STATES,
    FIELD_TYPES,
    PHOTO_KEY,
    RESERVED_KEYS,
    FieldConfiguration,
    FieldDescriptor,
)

logger = logging.getLogger(__name__)

InputKind = Literal["single_line", "multi_line", "numeric", "one_of", "boolean", "calendar"]

INPUT_KINDS: dict[str, InputKind] = {
    "text": "single_line",
    "email": "single_line",
    "url": "single_line",
    "phone": "single_line",
    "textarea": "multi_line",
    "number": "numeric",
    "select": "one_of",
    "radio": "one_of",
    "checkbox": "boolean",
    "date": "calendar",
}

GENDER_CHOICES: tuple[tuple[str, str], ...] = (
    ("female", "She/her (Female)"),
    ("male", "He/him (Male)"),
)
PHONE_COUNTRY_CODE = "+62"
DOMICILE_CHOICES: tuple[str, ...] = ("jakarta", "bandung", "surabaya", "yogyakarta", "bali", "medan")


def input_kind_for(field_type: str) -> InputKind:
    try:
        return INPUT_KINDS[field_type]
    except KeyError:
        raise ConfigurationError(f"unsupported field type '{field_type}'") from None


@dataclass(frozen=True, slots=True)
class RenderStrategy:
    """How the presentation layer should draw one field.

    ``kind`` is either a composite widget name (resolved by key) or the
    generic input kind of the field type.
    """

    kind: str
    choices: tuple[tuple[str, str], ...] = ()
    prefix: str = ""


def _options_as_choices(options: Iterable[str]) -> tuple[tuple[str, str], ...]:
    return tuple((option, option) for option in options)


def render_strategy_for(descriptor: FieldDescriptor) -> RenderStrategy:
    key = descriptor.key
    if key == "gender":
        return RenderStrategy(kind="binary_choice", choices=GENDER_CHOICES)
    if key == "phone_number":
        return RenderStrategy(kind="phone_composite", prefix=PHONE_COUNTRY_CODE)
    if key == "domicile":
        options = descriptor.options or DOMICILE_CHOICES
        return RenderStrategy(kind="location_lookup", choices=_options_as_choices(options))
    if key == PHOTO_KEY:
        return RenderStrategy(kind="photo_capture")

    kind = input_kind_for(descriptor.field_type)
    if kind == "one_of":
        return RenderStrategy(kind=kind, choices=_options_as_choices(descriptor.options))
    return RenderStrategy(kind=kind)


class FieldCatalog:
    """In-memory registry of field descriptors keyed by their stable key."""

    def __init__(self, descriptors: Iterable[FieldDescriptor] = ()):
        self._by_key: dict[str, FieldDescriptor] = {}
        self._by_id: dict[int, FieldDescriptor] = {}
        for descriptor in descriptors:
            self.register(descriptor)

    def register(self, descriptor: FieldDescriptor) -> FieldDescriptor:
        if descriptor.key in RESERVED_KEYS:
            raise CatalogError(f"field key '{descriptor.key}' is reserved")
        if descriptor.key in self._by_key:
            raise CatalogError(f"field key '{descriptor.key}' already registered")
        if descriptor.id in self._by_id:
            raise CatalogError(f"field id {descriptor.id} already registered")
        input_kind_for(descriptor.field_type)
        self._by_key[descriptor.key] = descriptor
        self._by_id[descriptor.id] = descriptor
        return descriptor

    def get(self, key: str) -> FieldDescriptor:
        try:
            return self._by_key[key]
        except KeyError:
            raise CatalogError(f"unknown field key '{key}'") from None

    def by_id(self, field_id: int) -> FieldDescriptor:
        try:
            return self._by_id[field_id]
        except KeyError:
            raise CatalogError(f"unknown field id {field_id}") from None

    def descriptors(self) -> list[FieldDescriptor]:
        return list(self._by_key.values())

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __len__(self) -> int:
        return len(self._by_key)


@dataclass(slots=True)
class ResolvedForm:
    job_id: int
    all_fields: list[FieldConfiguration]
    visible_fields: list[FieldConfiguration] = field(default_factory=list)
    generic_fields: list[FieldConfiguration] = field(default_factory=list)
    photo_field: FieldConfiguration | None = None

    @property
    def visible_keys(self) -> list[str]:
        return [config.key for config in self.visible_fields]

    def render_plan(self) -> list[tuple[FieldConfiguration, RenderStrategy]]:
        return [(config, render_strategy_for(config.field)) for config in self.visible_fields]


def sort_configurations(configurations: Iterable[FieldConfiguration]) -> list[FieldConfiguration]:
    return sorted(configurations, key=lambda config: (config.sort_order, config.key))


def resolve_form(configurations: Iterable[FieldConfiguration], job_id: int | None = None) -> ResolvedForm:
    ordered = sort_configurations(configurations)
    if not ordered:
        raise EmptyFormError(job_id)

    job_ids = {config.job_id for config in ordered}
    if len(job_ids) > 1:
        raise ConfigurationError(f"configurations span several jobs: {sorted(job_ids)}")
    resolved_job_id = job_id if job_id is not None else ordered[0].job_id

    seen: set[str] = set()
    for config in ordered:
        if config.state not in FIELD_STATES:
            raise ConfigurationError(f"field '{config.key}' has invalid state '{config.state}'")
        if config.field.field_type not in FIELD_TYPES:
            raise ConfigurationError(
                f"field '{config.key}' has unsupported type '{config.field.field_type}'"
            )
        if config.key in RESERVED_KEYS:
            raise ConfigurationError(f"field key '{config.key}' is reserved")
        if config.key in seen:
            raise ConfigurationError(f"field '{config.key}' configured twice")
        seen.add(config.key)

    visible = [config for config in ordered if config.is_visible]
    photo = next((config for config in visible if config.key == PHOTO_KEY), None)
    generic = [config for config in visible if config.key != PHOTO_KEY]

    logger.debug(
        "resolved form for job %s: %d configured, %d visible",
        resolved_job_id,
        len(ordered),
        len(visible),
    )
    return ResolvedForm(
        job_id=resolved_job_id,
        all_fields=ordered,
        visible_fields=visible,
        generic_fields=generic,
        photo_field=photo,
    )
