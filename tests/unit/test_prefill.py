from hireform.core.catalog import resolve_form
from hireform.core.prefill import EmptyDefaultStrategy, ProfileAttributeStrategy, resolve_prefill
from hireform.types import FieldConfiguration, FieldDescriptor, OtherInfoAnswer, ProfileSnapshot

DOMICILE = FieldDescriptor(id=5, key="domicile", label="Domicile")
PHONE = FieldDescriptor(id=6, key="phone_number", label="Phone Number", field_type="phone")
NOTICE = FieldDescriptor(id=9, key="notice_period", label="Notice period")


def _form():
    return resolve_form(
        [
            FieldConfiguration(job_id=3, field=DOMICILE, state="mandatory", sort_order=0),
            FieldConfiguration(job_id=3, field=PHONE, state="optional", sort_order=1),
            FieldConfiguration(job_id=3, field=NOTICE, state="optional", sort_order=2),
        ],
        job_id=3,
    )


def _profile(**overrides) -> ProfileSnapshot:
    values = {
        "id": 1,
        "user_id": "user-1",
        "full_name": "Siti Rahma",
        "phone": "+62 812 555 0101",
        "location": "Bandung",
        "resume_url": "http://127.0.0.1:8787/uploads/resume/old.pdf",
    }
    values.update(overrides)
    return ProfileSnapshot(**values)


def test_earlier_answer_beats_conflicting_profile_attribute() -> None:
    answers = [OtherInfoAnswer(id=40, profile_id=1, field_id=DOMICILE.id, answer="Jakarta")]

    result = resolve_prefill(_form(), _profile(), answers)

    assert result.values["domicile"] == "Jakarta"
    assert result.sources["domicile"] == "other_info"
    assert result.answer_ids == {DOMICILE.id: 40}


def test_profile_attribute_then_empty_default() -> None:
    result = resolve_prefill(_form(), _profile(), [])

    assert result.values == {"domicile": "Bandung", "phone_number": "+62 812 555 0101", "notice_period": ""}
    assert result.sources["phone_number"] == "profile"
    assert result.sources["notice_period"] == "empty"
    assert result.resume == "http://127.0.0.1:8787/uploads/resume/old.pdf"


def test_blank_earlier_answer_is_still_authoritative() -> None:
    answers = [OtherInfoAnswer(id=41, profile_id=1, field_id=PHONE.id, answer="")]

    result = resolve_prefill(_form(), _profile(), answers)

    assert result.values["phone_number"] == ""
    assert result.sources["phone_number"] == "other_info"


def test_answers_of_another_profile_are_ignored() -> None:
    answers = [OtherInfoAnswer(id=50, profile_id=99, field_id=DOMICILE.id, answer="Medan")]

    result = resolve_prefill(_form(), _profile(), answers)

    assert result.values["domicile"] == "Bandung"
    assert result.answer_ids == {}


def test_strategy_order_is_configurable() -> None:
    answers = [OtherInfoAnswer(id=40, profile_id=1, field_id=DOMICILE.id, answer="Jakarta")]

    result = resolve_prefill(
        _form(),
        _profile(),
        answers,
        strategies=(ProfileAttributeStrategy(), EmptyDefaultStrategy()),
    )

    assert result.values["domicile"] == "Bandung"


def test_fingerprint_tracks_profile_changes() -> None:
    first = resolve_prefill(_form(), _profile(), [])
    same = resolve_prefill(_form(), _profile(), [])
    moved = resolve_prefill(_form(), _profile(location="Surabaya"), [])

    assert first.fingerprint == same.fingerprint
    assert first.fingerprint != moved.fingerprint
