import pytest

from hireform.db.repositories import Repository
from hireform.db.session import SessionLocal
from hireform.errors import (
    CatalogError,
    ConfigurationError,
    DuplicateApplicationError,
    InvalidStatusTransition,
    SubmissionError,
)
from hireform.types import ApplicationSnapshot, OtherInfoUpsert, SubmissionPayload

RESUME_URL = "http://127.0.0.1:8787/uploads/resume/cv.pdf"


def _payload(field_ids: dict[str, int], **overrides) -> SubmissionPayload:
    data = {
        "application": ApplicationSnapshot(
            form_response={
                "full_name": "John Doe",
                "linkedin_url": "",
                "domicile": "Jakarta",
                "resume": RESUME_URL,
                "source": "linkedin",
                "coverLetter": "",
            },
            resume_url=RESUME_URL,
            source="linkedin",
        ),
        "profile_updates": {"full_name": "John Doe", "location": "Jakarta", "resume_url": RESUME_URL},
        "other_info_upserts": [
            OtherInfoUpsert(field_id=field_ids["full_name"], answer="John Doe"),
            OtherInfoUpsert(field_id=field_ids["domicile"], answer="Jakarta"),
        ],
    }
    data.update(overrides)
    return SubmissionPayload(**data)


def test_submission_writes_profile_answers_and_application(job_with_profile) -> None:
    with SessionLocal() as session:
        repo = Repository(session)
        application = repo.apply_submission(
            job_id=job_with_profile["job_id"],
            user_id="user-1",
            payload=_payload(job_with_profile["field_ids"]),
        )

        assert application.status == "PENDING"
        assert application.applied_at is not None
        assert application.form_response_json["domicile"] == "Jakarta"

        bundle = repo.get_profile_bundle("user-1")
        assert bundle.profile.location == "Jakarta"
        assert bundle.profile.resume_url == RESUME_URL
        assert {answer.field_key: answer.answer for answer in bundle.answers} == {
            "full_name": "John Doe",
            "domicile": "Jakarta",
        }
        assert repo.get_job(job_with_profile["job_id"]).applications_count == 1


def test_existing_answers_are_updated_in_place(job_with_profile) -> None:
    field_ids = job_with_profile["field_ids"]
    with SessionLocal() as session:
        repo = Repository(session)
        prior = repo.upsert_other_info(job_with_profile["profile_id"], field_ids["domicile"], "Medan")

        payload = _payload(
            field_ids,
            other_info_upserts=[OtherInfoUpsert(id=prior.id, field_id=field_ids["domicile"], answer="Jakarta")],
        )
        repo.apply_submission(job_id=job_with_profile["job_id"], user_id="user-1", payload=payload)

        answers = repo.list_other_info(job_with_profile["profile_id"])
        assert [(answer.id, answer.answer) for answer in answers] == [(prior.id, "Jakarta")]


def test_failed_submission_rolls_back_every_write(job_with_profile) -> None:
    field_ids = job_with_profile["field_ids"]
    payload = _payload(
        field_ids,
        other_info_upserts=[
            OtherInfoUpsert(field_id=field_ids["domicile"], answer="Jakarta"),
            OtherInfoUpsert(field_id=field_ids["email"], answer="john@acme.io"),
        ],
    )

    with SessionLocal() as session:
        repo = Repository(session)
        with pytest.raises(SubmissionError):
            repo.apply_submission(job_id=job_with_profile["job_id"], user_id="user-1", payload=payload)

    with SessionLocal() as session:
        repo = Repository(session)
        bundle = repo.get_profile_bundle("user-1")
        assert bundle.profile.location == "Bandung"
        assert bundle.answers == []
        assert repo.list_applications(job_with_profile["job_id"], limit=10) == []
        assert repo.get_job(job_with_profile["job_id"]).applications_count == 0


def test_second_application_to_same_job_is_a_duplicate(job_with_profile) -> None:
    with SessionLocal() as session:
        repo = Repository(session)
        repo.apply_submission(
            job_id=job_with_profile["job_id"],
            user_id="user-1",
            payload=_payload(job_with_profile["field_ids"]),
        )
        with pytest.raises(DuplicateApplicationError):
            repo.apply_submission(
                job_id=job_with_profile["job_id"],
                user_id="user-1",
                payload=_payload(job_with_profile["field_ids"]),
            )
        assert repo.get_job(job_with_profile["job_id"]).applications_count == 1


def test_status_updates_follow_the_lifecycle(job_with_profile) -> None:
    with SessionLocal() as session:
        repo = Repository(session)
        application = repo.apply_submission(
            job_id=job_with_profile["job_id"],
            user_id="user-1",
            payload=_payload(job_with_profile["field_ids"]),
        )

        reviewed = repo.update_application_status(application.id, "UNDER_REVIEW")
        assert reviewed.status == "UNDER_REVIEW"
        assert reviewed.status_updated_at is not None

        with pytest.raises(InvalidStatusTransition):
            repo.update_application_status(application.id, "ACCEPTED")

        viewed = repo.mark_application_viewed(application.id)
        assert viewed.viewed_at is not None


def test_field_configuration_management(job_with_profile) -> None:
    job_id = job_with_profile["job_id"]
    field_ids = job_with_profile["field_ids"]
    with SessionLocal() as session:
        repo = Repository(session)

        visible = [config.key for config in repo.list_visible_configurations(job_id)]
        assert visible == ["full_name", "linkedin_url", "domicile"]
        assert len(repo.list_field_configurations(job_id)) == 4

        repo.set_field_state(job_id, field_ids["email"], "mandatory")
        reordered = repo.reorder_fields(
            job_id,
            [field_ids["email"], field_ids["full_name"], field_ids["domicile"], field_ids["linkedin_url"]],
        )
        assert [config.key for config in reordered] == ["email", "full_name", "domicile", "linkedin_url"]
        assert reordered[0].state == "mandatory"

        with pytest.raises(ConfigurationError):
            repo.reorder_fields(job_id, [field_ids["email"]])
        with pytest.raises(ConfigurationError):
            repo.set_field_state(job_id, field_ids["email"], "hidden")


def test_catalog_rejects_reserved_and_duplicate_keys() -> None:
    with SessionLocal() as session:
        repo = Repository(session)
        created = repo.create_info_field(key="github_url", label="GitHub", field_type="url")
        assert created.is_custom

        with pytest.raises(CatalogError):
            repo.create_info_field(key="github_url", label="GitHub again")
        with pytest.raises(CatalogError):
            repo.create_info_field(key="source", label="Source")
        with pytest.raises(CatalogError):
            repo.create_info_field(key="level", label="Level", field_type="dropdown")
        assert "github_url" in repo.load_catalog()


def test_blank_profile_updates_never_clear_stored_values(job_with_profile) -> None:
    payload = _payload(
        job_with_profile["field_ids"],
        profile_updates={"full_name": "", "location": "   ", "phone": None, "resume_url": RESUME_URL},
    )

    with SessionLocal() as session:
        repo = Repository(session)
        repo.apply_submission(job_id=job_with_profile["job_id"], user_id="user-1", payload=payload)

        profile = repo.get_profile_bundle("user-1").profile
        assert profile.full_name == "John Doe"
        assert profile.location == "Bandung"
        assert profile.resume_url == RESUME_URL
