from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from hireform.core.catalog import GENDER_CHOICES
from hireform.db.models import InfoField

DEFAULT_INFO_FIELDS: list[dict[str, object]] = [
    {"key": "full_name", "label": "Full Name", "type": "text"},
    {"key": "photo_profile", "label": "Photo Profile", "type": "url"},
    {
        "key": "gender",
        "label": "Gender",
        "type": "radio",
        "options": [value for value, _ in GENDER_CHOICES],
    },
    {"key": "domicile", "label": "Domicile", "type": "text"},
    {"key": "phone_number", "label": "Phone Number", "type": "phone"},
    {"key": "email", "label": "Email", "type": "email"},
    {"key": "linkedin_url", "label": "LinkedIn Link", "type": "url"},
    {
        "key": "date_of_birth",
        "label": "Date of Birth",
        "type": "date",
        "validation": {"min_date": "1940-01-01"},
    },
    {
        "key": "years_experience",
        "label": "Years of experience",
        "type": "number",
        "validation": {"min": 0, "max": 60},
        "custom": True,
    },
    {
        "key": "education_level",
        "label": "Highest education",
        "type": "select",
        "options": ["High school", "Diploma", "Bachelor", "Master", "Doctorate"],
        "custom": True,
    },
    {"key": "notice_period", "label": "Notice period", "type": "text", "custom": True},
    {
        "key": "expected_salary",
        "label": "Expected salary",
        "type": "number",
        "validation": {"min": 0},
        "custom": True,
    },
    {"key": "portfolio_url", "label": "Portfolio URL", "type": "url", "custom": True},
    {"key": "willing_to_relocate", "label": "Willing to relocate", "type": "checkbox", "custom": True},
]


def seed_info_fields(session: Session) -> int:
    existing = set(session.scalars(select(InfoField.key)).all())
    inserted = 0
    for order, item in enumerate(DEFAULT_INFO_FIELDS):
        key = str(item["key"])
        if key in existing:
            continue
        session.add(
            InfoField(
                key=key,
                label=str(item["label"]),
                field_type=str(item["type"]),
                options_json=list(item.get("options", [])),
                description=str(item.get("description", "")),
                validation_json=dict(item.get("validation", {})),
                is_custom=bool(item.get("custom", False)),
                display_order=order,
            )
        )
        inserted += 1
    session.commit()
    return inserted
