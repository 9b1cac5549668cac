import pytest

from hireform.core.attachments import CoverLetterInput, select_attachment
from hireform.core.catalog import resolve_form
from hireform.core.prefill import resolve_prefill
from hireform.core.schema_builder import build_application_schema
from hireform.core.submission import assemble_submission
from hireform.errors import FormValidationError, SubmissionError
from hireform.types import FieldConfiguration, FieldDescriptor, OtherInfoAnswer, ProfileSnapshot

RESUME_URL = "http://127.0.0.1:8787/uploads/resume/cv.pdf"
FULL_NAME = FieldDescriptor(id=1, key="full_name", label="Full Name")
LINKEDIN = FieldDescriptor(id=4, key="linkedin_url", label="LinkedIn Link", field_type="url")
EMAIL = FieldDescriptor(id=2, key="email", label="Email", field_type="email")


def _form(email_state: str = "off"):
    return resolve_form(
        [
            FieldConfiguration(job_id=1, field=FULL_NAME, state="mandatory", sort_order=0),
            FieldConfiguration(job_id=1, field=LINKEDIN, state="optional", sort_order=1),
            FieldConfiguration(job_id=1, field=EMAIL, state=email_state, sort_order=2),
        ],
        job_id=1,
    )


def _profile() -> ProfileSnapshot:
    return ProfileSnapshot(id=1, user_id="user-1", full_name="Johnny", linkedin_url="https://linkedin.com/in/johnny")


def test_minimal_submission_payload() -> None:
    form = _form()
    schema = build_application_schema(form)
    validated = schema.validate_or_raise(
        {"full_name": "John Doe", "linkedin_url": "", "resume": RESUME_URL, "source": "linkedin", "email": "x"}
    )

    payload = assemble_submission(validated, form, _profile())

    assert payload.application.form_response == {
        "full_name": "John Doe",
        "linkedin_url": "",
        "resume": RESUME_URL,
        "source": "linkedin",
        "coverLetter": "",
    }
    assert list(payload.application.form_response) == ["full_name", "linkedin_url", "resume", "source", "coverLetter"]
    assert payload.application.resume_url == RESUME_URL
    assert payload.application.source == "linkedin"


def test_profile_updates_keep_prior_values_for_empty_answers() -> None:
    form = _form()
    validated = {"full_name": "John Doe", "linkedin_url": "", "resume": RESUME_URL, "source": "linkedin"}

    payload = assemble_submission(validated, form, _profile())

    assert payload.profile_updates["full_name"] == "John Doe"
    assert payload.profile_updates["linkedin_url"] == "https://linkedin.com/in/johnny"
    assert payload.profile_updates["resume_url"] == RESUME_URL
    assert "email" not in payload.profile_updates


def test_one_upsert_per_visible_generic_field_with_known_ids() -> None:
    form = _form(email_state="optional")
    prefill = resolve_prefill(
        form,
        _profile(),
        [OtherInfoAnswer(id=77, profile_id=1, field_id=EMAIL.id, answer="old@acme.io")],
    )
    validated = {
        "full_name": "John Doe",
        "linkedin_url": "",
        "email": "john@acme.io",
        "resume": RESUME_URL,
        "source": "referral",
    }

    payload = assemble_submission(validated, form, _profile(), prefill)

    upserts = {item.field_id: item for item in payload.other_info_upserts}
    assert set(upserts) == {FULL_NAME.id, LINKEDIN.id, EMAIL.id}
    assert upserts[EMAIL.id].id == 77
    assert upserts[EMAIL.id].answer == "john@acme.io"
    assert upserts[FULL_NAME.id].id is None


def test_missing_mandatory_value_never_produces_a_payload() -> None:
    with pytest.raises(FormValidationError) as exc_info:
        assemble_submission({"full_name": "", "resume": RESUME_URL, "source": "other"}, _form(), _profile())
    assert exc_info.value.errors == {"full_name": "Full Name is required"}


def test_attachment_must_be_uploaded_before_assembly() -> None:
    handle = select_attachment("resume", "cv.pdf", b"%PDF-1.7", "application/pdf")

    with pytest.raises(SubmissionError):
        assemble_submission({"full_name": "John", "resume": handle, "source": "other"}, _form(), _profile())

    uploaded = handle.model_copy(update={"uploaded_url": RESUME_URL})
    payload = assemble_submission({"full_name": "John", "resume": uploaded, "source": "other"}, _form(), _profile())
    assert payload.application.resume_url == RESUME_URL


def test_switching_cover_letter_to_text_drops_the_file_reference() -> None:
    cover = CoverLetterInput()
    uploaded = select_attachment("cover_letter", "cover.pdf", b"%PDF-1.7", "application/pdf").model_copy(
        update={"uploaded_url": "http://127.0.0.1:8787/uploads/cover_letter/cover.pdf"}
    )
    cover.set_file(uploaded)
    cover.switch_mode("text")
    cover.set_text("Typed letter explaining why this role is the right next step for me.")
    values = {"full_name": "John", "resume": RESUME_URL, "source": "other", "coverLetter": cover.value}

    payload = assemble_submission(values, _form(), _profile())

    assert payload.application.cover_letter == "Typed letter explaining why this role is the right next step for me."
    assert "cover.pdf" not in payload.model_dump_json()


def test_photo_is_folded_into_the_avatar_instead_of_an_answer() -> None:
    photo_field = FieldDescriptor(id=8, key="photo_profile", label="Photo Profile", field_type="url")
    form = resolve_form(
        [
            FieldConfiguration(job_id=1, field=FULL_NAME, state="mandatory", sort_order=0),
            FieldConfiguration(job_id=1, field=photo_field, state="mandatory", sort_order=1),
        ],
        job_id=1,
    )
    photo_url = "http://127.0.0.1:8787/uploads/photo/me.png"
    photo = select_attachment("photo", "me.png", b"\x89PNG\r\n", "image/png").model_copy(
        update={"uploaded_url": photo_url}
    )
    validated = {"full_name": "John Doe", "photo_profile": photo, "resume": RESUME_URL, "source": "referral"}

    payload = assemble_submission(validated, form, _profile())

    assert payload.application.form_response["photo_profile"] == photo_url
    assert payload.profile_updates["avatar_url"] == photo_url
    assert [upsert.field_id for upsert in payload.other_info_upserts] == [FULL_NAME.id]
