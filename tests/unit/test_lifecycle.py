from dataclasses import dataclass
from datetime import UTC, datetime

import pytest

from hireform.core.lifecycle import StatusLifecycle, initial_status
from hireform.errors import InvalidStatusTransition


@dataclass
class _Application:
    status: str = "PENDING"
    status_updated_at: datetime | None = None
    viewed_at: datetime | None = None


def test_review_path_to_acceptance() -> None:
    lifecycle = StatusLifecycle.default()
    application = _Application()
    stamp = datetime(2026, 10, 1, 9, 30, tzinfo=UTC)

    for target in ("UNDER_REVIEW", "SHORTLISTED", "ACCEPTED"):
        lifecycle.transition(application, target, now=stamp)

    assert application.status == "ACCEPTED"
    assert application.status_updated_at == stamp
    assert lifecycle.is_terminal(application.status)


def test_rejection_only_follows_shortlisting() -> None:
    lifecycle = StatusLifecycle.default()

    assert not lifecycle.can_transition("PENDING", "REJECTED")
    assert not lifecycle.can_transition("UNDER_REVIEW", "REJECTED")
    assert lifecycle.can_transition("SHORTLISTED", "REJECTED")


def test_withdrawal_from_any_open_state() -> None:
    lifecycle = StatusLifecycle.default()

    for status in ("PENDING", "UNDER_REVIEW", "SHORTLISTED"):
        assert lifecycle.can_transition(status, "WITHDRAWN")
    assert lifecycle.allowed_targets("WITHDRAWN") == frozenset()


def test_invalid_transition_leaves_status_untouched() -> None:
    application = _Application(status="ACCEPTED")

    with pytest.raises(InvalidStatusTransition):
        StatusLifecycle.default().transition(application, "PENDING")
    assert application.status == "ACCEPTED"
    assert application.status_updated_at is None


def test_viewed_is_stamped_once() -> None:
    lifecycle = StatusLifecycle.default()
    application = _Application()
    first = datetime(2026, 10, 2, tzinfo=UTC)

    assert lifecycle.mark_viewed(application, now=first)
    assert not lifecycle.mark_viewed(application, now=datetime(2026, 10, 3, tzinfo=UTC))
    assert application.viewed_at == first


def test_new_applications_always_start_pending() -> None:
    assert initial_status() == "PENDING"
    with pytest.raises(InvalidStatusTransition):
        initial_status("ACCEPTED")
