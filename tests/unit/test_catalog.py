import pytest

from hireform.core.catalog import (
    DOMICILE_CHOICES,
    GENDER_CHOICES,
    FieldCatalog,
    render_strategy_for,
    resolve_form,
)
from hireform.errors import CatalogError, ConfigurationError, EmptyFormError
from hireform.types import FieldConfiguration, FieldDescriptor


def _config(
    field_id: int, key: str, state: str, *, field_type: str = "text", order: int = 0, **extra
) -> FieldConfiguration:
    descriptor = FieldDescriptor(
        id=field_id, key=key, label=key.replace("_", " ").title(), field_type=field_type, **extra
    )
    return FieldConfiguration(job_id=7, field=descriptor, state=state, sort_order=order)


def test_off_fields_are_kept_but_not_visible() -> None:
    form = resolve_form(
        [
            _config(2, "linkedin_url", "optional", field_type="url", order=2),
            _config(1, "full_name", "mandatory", order=1),
            _config(3, "gender", "off", field_type="radio", order=0),
        ],
        job_id=7,
    )

    assert [config.key for config in form.all_fields] == ["gender", "full_name", "linkedin_url"]
    assert form.visible_keys == ["full_name", "linkedin_url"]
    assert "gender" not in [config.key for config, _ in form.render_plan()]


def test_equal_sort_orders_fall_back_to_key() -> None:
    form = resolve_form([_config(1, "zeta", "optional"), _config(2, "alpha", "optional")])
    assert form.visible_keys == ["alpha", "zeta"]


def test_empty_configuration_is_a_configuration_error() -> None:
    with pytest.raises(EmptyFormError) as exc_info:
        resolve_form([], job_id=11)
    assert exc_info.value.job_id == 11


def test_reserved_and_duplicate_keys_are_rejected() -> None:
    with pytest.raises(ConfigurationError):
        resolve_form([_config(1, "resume", "optional")])
    with pytest.raises(ConfigurationError):
        resolve_form([_config(1, "email", "optional"), _config(2, "email", "mandatory")])


def test_photo_profile_is_split_from_generic_fields() -> None:
    form = resolve_form(
        [_config(1, "full_name", "mandatory"), _config(8, "photo_profile", "optional", field_type="url", order=1)]
    )
    assert form.photo_field is not None
    assert form.photo_field.key == "photo_profile"
    assert [config.key for config in form.generic_fields] == ["full_name"]


def test_special_keys_resolve_before_field_type() -> None:
    gender = FieldDescriptor(id=1, key="gender", label="Gender", field_type="radio", options=("female", "male"))
    phone = FieldDescriptor(id=2, key="phone_number", label="Phone Number", field_type="phone")
    domicile = FieldDescriptor(id=3, key="domicile", label="Domicile")
    notes = FieldDescriptor(id=4, key="notes", label="Notes", field_type="textarea")
    level = FieldDescriptor(id=5, key="level", label="Level", field_type="select", options=("Junior", "Senior"))

    assert render_strategy_for(gender).kind == "binary_choice"
    assert render_strategy_for(gender).choices == GENDER_CHOICES
    assert render_strategy_for(phone).prefix == "+62"
    assert [value for value, _ in render_strategy_for(domicile).choices] == list(DOMICILE_CHOICES)
    assert render_strategy_for(notes).kind == "multi_line"
    assert render_strategy_for(level).choices == (("Junior", "Junior"), ("Senior", "Senior"))


def test_field_catalog_registration_rules() -> None:
    catalog = FieldCatalog([FieldDescriptor(id=1, key="email", label="Email", field_type="email")])

    assert "email" in catalog
    assert catalog.by_id(1).key == "email"
    with pytest.raises(CatalogError):
        catalog.register(FieldDescriptor(id=2, key="email", label="Other email"))
    with pytest.raises(CatalogError):
        catalog.register(FieldDescriptor(id=3, key="coverLetter", label="Cover"))
    with pytest.raises(CatalogError):
        catalog.get("missing")
    assert len(catalog) == 1
