import json

from typer.testing import CliRunner

from hireform.cli.app import app

runner = CliRunner()


def test_cli_publishes_job_and_submits_application(tmp_path) -> None:
    created = runner.invoke(
        app,
        ["jobs", "create", "--title", "Data Engineer", "--field", "full_name=mandatory", "--field", "email=optional"],
    )
    assert created.exit_code == 0, created.output
    job_id = json.loads(created.stdout)["id"]

    profile = runner.invoke(app, ["profile", "create", "--user-id", "cli-user", "--full-name", "Ayu Lestari"])
    assert profile.exit_code == 0, profile.output

    resume = tmp_path / "cv.pdf"
    resume.write_bytes(b"%PDF-1.7 cli resume")
    answers = tmp_path / "answers.json"
    answers.write_text(json.dumps({"email": "ayu@acme.io"}), encoding="utf-8")

    applied = runner.invoke(
        app,
        [
            "apply",
            "--job-id",
            str(job_id),
            "--user-id",
            "cli-user",
            "--answers",
            str(answers),
            "--resume",
            str(resume),
            "--source",
            "referral",
        ],
    )
    assert applied.exit_code == 0, applied.output
    record = json.loads(applied.stdout)
    assert record["status"] == "PENDING"
    assert record["form_response"]["full_name"] == "Ayu Lestari"
    assert record["form_response"]["email"] == "ayu@acme.io"

    status = runner.invoke(app, ["applications", "status", "--id", str(record["id"]), "--status", "UNDER_REVIEW"])
    assert status.exit_code == 0, status.output
    assert json.loads(status.stdout)["status"] == "UNDER_REVIEW"


def test_cli_rejects_unknown_catalog_type() -> None:
    result = runner.invoke(app, ["catalog", "add", "--key", "shoe_size", "--label", "Shoe size", "--type", "dropdown"])

    assert result.exit_code == 1
