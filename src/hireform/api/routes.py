from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from hireform.api.deps import get_current_user_id, get_db
from hireform.api.schemas import (
    FieldConfigurationResponse,
    FieldOrderRequest,
    FieldStateRequest,
    InfoFieldCreateRequest,
    InfoFieldResponse,
    JobCreateRequest,
    JobResponse,
    ProfileCreateRequest,
    RenderHint,
    StatusUpdateRequest,
    UploadResponse,
)
from hireform.config import get_settings
from hireform.core.catalog import render_strategy_for
from hireform.core.intake import ApplicationIntake
from hireform.db.models import InfoField, Job
from hireform.db.repositories import Repository, application_record
from hireform.errors import NotFoundError
from hireform.storage import LocalAttachmentStore
from hireform.types import (
    ApplicationRecord,
    AttachmentKind,
    FieldConfiguration,
    ProfileBundle,
    SubmissionPayload,
)

router = APIRouter(prefix="/api", tags=["api"])


def _info_field_response(row: InfoField) -> InfoFieldResponse:
    return InfoFieldResponse(
        id=row.id,
        key=row.key,
        label=row.label,
        field_type=row.field_type,
        options=list(row.options_json or []),
        description=row.description,
        validation=dict(row.validation_json or {}),
        is_custom=row.is_custom,
    )


def _job_response(job: Job) -> JobResponse:
    return JobResponse(
        id=job.id,
        title=job.title,
        company=job.company,
        location=job.location,
        description=job.description,
        status=job.status,
        applications_count=job.applications_count,
    )


def _configuration_response(config: FieldConfiguration) -> FieldConfigurationResponse:
    strategy = render_strategy_for(config.field)
    return FieldConfigurationResponse(
        **config.model_dump(),
        render=RenderHint(kind=strategy.kind, choices=list(strategy.choices), prefix=strategy.prefix),
    )


def _require_job(repo: Repository, job_id: int) -> Job:
    job = repo.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.get("/catalog/fields", response_model=list[InfoFieldResponse])
def list_catalog_fields(db: Session = Depends(get_db)) -> list[InfoFieldResponse]:
    repo = Repository(db)
    return [_info_field_response(row) for row in repo.list_info_fields()]


@router.post("/catalog/fields", response_model=InfoFieldResponse, status_code=201)
def create_catalog_field(payload: InfoFieldCreateRequest, db: Session = Depends(get_db)) -> InfoFieldResponse:
    repo = Repository(db)
    row = repo.create_info_field(
        key=payload.key,
        label=payload.label,
        field_type=payload.field_type,
        options=payload.options,
        description=payload.description,
        validation=payload.validation,
    )
    return _info_field_response(row)


@router.post("/jobs", response_model=JobResponse, status_code=201)
def create_job(payload: JobCreateRequest, db: Session = Depends(get_db)) -> JobResponse:
    repo = Repository(db)
    job = repo.create_job(
        title=payload.title,
        company=payload.company,
        location=payload.location,
        description=payload.description,
        fields=[(item.key, item.state) for item in payload.fields],
    )
    return _job_response(job)


@router.get("/jobs/{job_id}", response_model=JobResponse)
def get_job(job_id: int, db: Session = Depends(get_db)) -> JobResponse:
    return _job_response(_require_job(Repository(db), job_id))


@router.get("/jobs/{job_id}/application-fields", response_model=list[FieldConfigurationResponse])
def get_application_fields(job_id: int, db: Session = Depends(get_db)) -> list[FieldConfigurationResponse]:
    form = ApplicationIntake(db).visible_form(job_id)
    return [_configuration_response(config) for config in form.visible_fields]


@router.get("/jobs/{job_id}/form-fields", response_model=list[FieldConfigurationResponse])
def get_form_fields(job_id: int, db: Session = Depends(get_db)) -> list[FieldConfigurationResponse]:
    repo = Repository(db)
    _require_job(repo, job_id)
    return [_configuration_response(config) for config in repo.list_field_configurations(job_id)]


@router.patch("/jobs/{job_id}/form-fields/{field_id}", response_model=FieldConfigurationResponse)
def update_form_field(
    job_id: int,
    field_id: int,
    payload: FieldStateRequest,
    db: Session = Depends(get_db),
) -> FieldConfigurationResponse:
    repo = Repository(db)
    repo.set_field_state(job_id, field_id, payload.state)
    config = next(item for item in repo.list_field_configurations(job_id) if item.field.id == field_id)
    return _configuration_response(config)


@router.put("/jobs/{job_id}/form-fields/order", response_model=list[FieldConfigurationResponse])
def reorder_form_fields(
    job_id: int,
    payload: FieldOrderRequest,
    db: Session = Depends(get_db),
) -> list[FieldConfigurationResponse]:
    repo = Repository(db)
    _require_job(repo, job_id)
    return [_configuration_response(config) for config in repo.reorder_fields(job_id, payload.field_ids)]


@router.get("/jobs/{job_id}/applications", response_model=list[ApplicationRecord])
def list_job_applications(
    job_id: int,
    limit: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
) -> list[ApplicationRecord]:
    repo = Repository(db)
    _require_job(repo, job_id)
    rows = repo.list_applications(job_id, limit=limit or get_settings().default_page_size)
    return [application_record(row) for row in rows]


@router.post("/profiles", response_model=ProfileBundle, status_code=201)
def create_profile(payload: ProfileCreateRequest, db: Session = Depends(get_db)) -> ProfileBundle:
    repo = Repository(db)
    if repo.get_profile_by_user(payload.user_id):
        raise HTTPException(status_code=409, detail="Profile already exists")
    repo.create_profile(**payload.model_dump())
    return repo.get_profile_bundle(payload.user_id)


@router.get("/profiles/user/{user_id}", response_model=ProfileBundle)
def get_profile_for_user(user_id: str, db: Session = Depends(get_db)) -> ProfileBundle:
    bundle = Repository(db).get_profile_bundle(user_id)
    if bundle is None:
        raise HTTPException(status_code=404, detail="User profile not found")
    return bundle


@router.post("/uploads/{kind}", response_model=UploadResponse, status_code=201)
async def upload_attachment(
    kind: AttachmentKind,
    file: UploadFile = File(...),
    _user_id: str = Depends(get_current_user_id),
) -> UploadResponse:
    content = await file.read()
    filename = file.filename or "upload"
    url = LocalAttachmentStore().save(kind, filename, content, file.content_type)
    return UploadResponse(
        url=url,
        filename=filename,
        content_type=file.content_type or "",
        size_bytes=len(content),
    )


@router.post("/jobs/{job_id}/apply", response_model=ApplicationRecord, status_code=201)
def apply_to_job(
    job_id: int,
    payload: SubmissionPayload,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> ApplicationRecord:
    return ApplicationIntake(db).apply(job_id=job_id, user_id=user_id, payload=payload)


@router.get("/applications/{application_id}", response_model=ApplicationRecord)
def get_application(application_id: int, db: Session = Depends(get_db)) -> ApplicationRecord:
    row = Repository(db).get_application(application_id)
    if not row:
        raise NotFoundError(f"application {application_id} not found")
    return application_record(row)


@router.patch("/applications/{application_id}/status", response_model=ApplicationRecord)
def update_application_status(
    application_id: int,
    payload: StatusUpdateRequest,
    db: Session = Depends(get_db),
) -> ApplicationRecord:
    row = Repository(db).update_application_status(application_id, payload.status)
    return application_record(row)


@router.post("/applications/{application_id}/viewed", response_model=ApplicationRecord)
def mark_application_viewed(application_id: int, db: Session = Depends(get_db)) -> ApplicationRecord:
    return application_record(Repository(db).mark_application_viewed(application_id))
