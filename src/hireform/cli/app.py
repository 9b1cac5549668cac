from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import NoReturn

import typer
import uvicorn

from hireform.api.app import create_app
from hireform.client.backend import LocalApplicationBackend
from hireform.client.session import FormSession
from hireform.config import get_settings
from hireform.db.init import init_database
from hireform.db.repositories import Repository, application_record
from hireform.db.session import SessionLocal
from hireform.errors import HireformError
from hireform.logging_config import configure_logging

app = typer.Typer(help="Hireform CLI")
catalog_app = typer.Typer(help="Field catalog commands")
jobs_app = typer.Typer(help="Jobs and their application forms")
profile_app = typer.Typer(help="Applicant profiles")
applications_app = typer.Typer(help="Submitted applications")

app.add_typer(catalog_app, name="catalog")
app.add_typer(jobs_app, name="jobs")
app.add_typer(profile_app, name="profile")
app.add_typer(applications_app, name="applications")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _fail(exc: HireformError) -> NoReturn:
    typer.echo(json.dumps({"ok": False, "error": type(exc).__name__, "detail": str(exc)}, indent=2), err=True)
    raise typer.Exit(code=1)


@app.command("init")
def init_cmd() -> None:
    """Initialize database, directories, and the default field catalog."""
    configure_logging()
    result = init_database()
    typer.echo(json.dumps({"ok": True, **result}, indent=2))


@catalog_app.command("list")
def catalog_list() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        rows = Repository(db).list_info_fields()
        typer.echo(
            json.dumps(
                [
                    {"id": row.id, "key": row.key, "label": row.label, "type": row.field_type}
                    for row in rows
                ],
                indent=2,
            )
        )


@catalog_app.command("add")
def catalog_add(
    key: str = typer.Option(..., "--key"),
    label: str = typer.Option(..., "--label"),
    field_type: str = typer.Option("text", "--type"),
    option: list[str] = typer.Option([], "--option", help="Repeat for each choice of select/radio fields"),
    description: str = typer.Option("", "--description"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            row = Repository(db).create_info_field(
                key=key,
                label=label,
                field_type=field_type,
                options=option,
                description=description,
            )
        except HireformError as exc:
            _fail(exc)
        typer.echo(json.dumps({"id": row.id, "key": row.key}, indent=2))


@jobs_app.command("create")
def jobs_create(
    title: str = typer.Option(..., "--title"),
    company: str = typer.Option("", "--company"),
    location: str = typer.Option("", "--location"),
    field: list[str] = typer.Option([], "--field", help="key=state, e.g. full_name=mandatory"),
) -> None:
    configure_logging()
    ensure_initialized()
    fields: list[tuple[str, str]] = []
    for item in field:
        key, _, state = item.partition("=")
        if not key or not state:
            raise typer.BadParameter(f"expected key=state, got '{item}'")
        fields.append((key.strip(), state.strip()))

    with SessionLocal() as db:
        try:
            job = Repository(db).create_job(title=title, company=company, location=location, fields=fields)
        except HireformError as exc:
            _fail(exc)
        typer.echo(json.dumps({"id": job.id, "title": job.title, "fields": len(fields)}, indent=2))


@jobs_app.command("list")
def jobs_list(limit: int | None = typer.Option(None, "--limit")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        rows = Repository(db).list_jobs(limit=limit or get_settings().default_page_size)
        typer.echo(
            json.dumps(
                [
                    {
                        "id": row.id,
                        "title": row.title,
                        "company": row.company,
                        "applications_count": row.applications_count,
                    }
                    for row in rows
                ],
                indent=2,
            )
        )


@jobs_app.command("fields")
def jobs_fields(job_id: int = typer.Option(..., "--job-id")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        if not repo.get_job(job_id):
            raise typer.BadParameter(f"job {job_id} not found")
        typer.echo(
            json.dumps(
                [
                    {
                        "field_id": config.field.id,
                        "key": config.key,
                        "label": config.field.label,
                        "state": config.state,
                        "sort_order": config.sort_order,
                    }
                    for config in repo.list_field_configurations(job_id)
                ],
                indent=2,
            )
        )


@jobs_app.command("set-state")
def jobs_set_state(
    job_id: int = typer.Option(..., "--job-id"),
    field_id: int = typer.Option(..., "--field-id"),
    state: str = typer.Option(..., "--state"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            row = Repository(db).set_field_state(job_id, field_id, state)
        except HireformError as exc:
            _fail(exc)
        typer.echo(json.dumps({"job_id": row.job_id, "field_id": row.field_id, "state": row.field_state}, indent=2))


@profile_app.command("create")
def profile_create(
    user_id: str = typer.Option(..., "--user-id"),
    full_name: str = typer.Option("", "--full-name"),
    phone: str = typer.Option("", "--phone"),
    location: str = typer.Option("", "--location"),
    linkedin_url: str = typer.Option("", "--linkedin-url"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        if repo.get_profile_by_user(user_id):
            raise typer.BadParameter(f"profile for {user_id} already exists")
        profile = repo.create_profile(
            user_id,
            full_name=full_name,
            phone=phone,
            location=location,
            linkedin_url=linkedin_url,
        )
        typer.echo(json.dumps({"id": profile.id, "user_id": profile.user_id}, indent=2))


@app.command("apply")
def apply_cmd(
    job_id: int = typer.Option(..., "--job-id"),
    user_id: str = typer.Option(..., "--user-id"),
    answers: Path | None = typer.Option(None, "--answers", exists=True, readable=True),
    resume: Path | None = typer.Option(None, "--resume", exists=True, readable=True),
    source: str = typer.Option(..., "--source"),
    cover_letter: str = typer.Option("", "--cover-letter"),
    cover_letter_file: Path | None = typer.Option(None, "--cover-letter-file", exists=True, readable=True),
) -> None:
    """Fill in and submit a job's application form as the given user."""
    configure_logging()
    ensure_initialized()

    async def run() -> FormSession:
        session = FormSession(LocalApplicationBackend(), job_id=job_id, user_id=user_id)
        if not await session.load():
            return session
        if answers is not None:
            for key, value in json.loads(answers.read_text(encoding="utf-8")).items():
                session.set_value(key, value)
        if resume is not None:
            session.select_resume(resume.name, resume.read_bytes())
        session.set_value("source", source)
        if cover_letter_file is not None:
            session.select_cover_letter_file(cover_letter_file.name, cover_letter_file.read_bytes())
        elif cover_letter:
            session.set_cover_letter_text(cover_letter)
        await session.submit()
        return session

    try:
        session = asyncio.run(run())
    except HireformError as exc:
        _fail(exc)

    if session.load_error is not None:
        _fail(session.load_error)
    if session.result is None:
        failure = {"ok": False, "errors": session.errors}
        if session.submit_error is not None:
            failure["detail"] = str(session.submit_error)
        typer.echo(json.dumps(failure, indent=2), err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(session.result.model_dump(mode="json"), indent=2))


@applications_app.command("list")
def applications_list(
    job_id: int = typer.Option(..., "--job-id"),
    limit: int | None = typer.Option(None, "--limit"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        rows = Repository(db).list_applications(job_id, limit=limit or get_settings().default_page_size)
        typer.echo(json.dumps([application_record(row).model_dump(mode="json") for row in rows], indent=2))


@applications_app.command("show")
def applications_show(application_id: int = typer.Option(..., "--id")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        row = Repository(db).get_application(application_id)
        if not row:
            raise typer.BadParameter(f"application {application_id} not found")
        typer.echo(json.dumps(application_record(row).model_dump(mode="json"), indent=2))


@applications_app.command("status")
def applications_status(
    application_id: int = typer.Option(..., "--id"),
    status: str = typer.Option(..., "--status"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            row = Repository(db).update_application_status(application_id, status)
        except HireformError as exc:
            _fail(exc)
        typer.echo(json.dumps(application_record(row).model_dump(mode="json"), indent=2))


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)
