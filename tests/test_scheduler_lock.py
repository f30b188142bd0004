from datetime import timedelta

from sqlalchemy import select

from app.models.scheduler_lock import SchedulerLock
from app.services.scheduler_lock import (
    LOCK_NAME,
    describe_scheduler_lock,
    release_scheduler_lock,
    try_acquire_scheduler_lock,
)
from app.utils.time import utcnow


def test_scheduler_lock_is_reentrant_for_owner(db_session):
    release_scheduler_lock(db_session=db_session)

    assert try_acquire_scheduler_lock(db_session=db_session) is True
    assert try_acquire_scheduler_lock(db_session=db_session) is True

    release_scheduler_lock(db_session=db_session)


def test_lock_cannot_be_taken_if_not_expired(monkeypatch, db_session):
    release_scheduler_lock(db_session=db_session)

    monkeypatch.setattr("app.services.scheduler_lock._owner_id", lambda: "node-A")
    assert try_acquire_scheduler_lock(db_session=db_session, ttl_seconds=300)

    monkeypatch.setattr("app.services.scheduler_lock._owner_id", lambda: "node-B")
    assert try_acquire_scheduler_lock(db_session=db_session, ttl_seconds=300) is False


def test_lock_can_be_reacquired_after_expiry(monkeypatch, db_session):
    release_scheduler_lock(db_session=db_session)

    monkeypatch.setattr("app.services.scheduler_lock._owner_id", lambda: "node-A")
    assert try_acquire_scheduler_lock(db_session=db_session, ttl_seconds=60)

    with db_session.begin():
        lock = db_session.execute(select(SchedulerLock).where(SchedulerLock.name == LOCK_NAME)).scalar_one()
        lock.expires_at = utcnow() - timedelta(seconds=1)

    monkeypatch.setattr("app.services.scheduler_lock._owner_id", lambda: "node-B")
    assert try_acquire_scheduler_lock(db_session=db_session, ttl_seconds=300)

    info = describe_scheduler_lock(db_session=db_session)
    assert info["present"] is True
    assert info["owner"] == "node-B"
    assert "age_seconds" in info
