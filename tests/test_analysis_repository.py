import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlmodel import select

from oralscan.db.models import Analysis
from oralscan.infrastructure.persistence.sqlalchemy.repositories.analysis_repository_sql import (
    SqlAnalysisRepository,
    quantize_confidence,
)


def test_create_returns_stored_row(session):
    repo = SqlAnalysisRepository(session)
    rec = repo.create("alice", "data:image/png;base64,AAAA", "Concerning", 0.87, "white patch", "high")

    assert uuid.UUID(rec.id)
    assert rec.user_id == "alice"
    assert rec.result == "Concerning"
    assert rec.confidence == 0.87
    assert rec.severity == "high"
    assert rec.status == "pending"
    assert isinstance(rec.created_at, datetime)


def test_round_trip_through_history_keeps_result_and_confidence(session):
    repo = SqlAnalysisRepository(session)
    repo.create("alice", "img", "Normal", 0.8, "clear", "low")

    history = repo.list_for_user("alice")
    assert len(history) == 1
    assert history[0].result == "Normal"
    assert history[0].confidence == 0.8
    assert history[0].explanation == "clear"


def test_confidence_is_rounded_to_three_places(session):
    repo = SqlAnalysisRepository(session)
    repo.create("alice", "img", "Normal", 0.12345, None, "low")
    assert repo.list_for_user("alice")[0].confidence == 0.123


def test_quantize_confidence_rounds_half_up():
    assert quantize_confidence(0.9995) == Decimal("1.000")
    assert quantize_confidence(0.1235) == Decimal("0.124")


def test_history_is_most_recent_first(session):
    t1 = datetime(2024, 1, 1, 9, 0, 0, tzinfo=timezone.utc)
    for label, ts in [("t1", t1), ("t3", t1 + timedelta(hours=2)), ("t2", t1 + timedelta(hours=1))]:
        session.add(Analysis(
            user_id="alice",
            image_url="img",
            result="Normal",
            confidence=Decimal("0.500"),
            explanation=label,
            severity="low",
            timestamp=ts,
        ))
    session.commit()

    history = SqlAnalysisRepository(session).list_for_user("alice")
    assert [r.explanation for r in history] == ["t3", "t2", "t1"]


def test_history_is_scoped_to_user(session):
    repo = SqlAnalysisRepository(session)
    repo.create("alice", "img", "Normal", 0.5, None, "low")
    repo.create("bob", "img", "Concerning", 0.9, None, "high")

    assert [r.user_id for r in repo.list_for_user("alice")] == ["alice"]
    assert repo.list_for_user("carol") == []


def test_delete_by_other_user_does_not_delete(session):
    repo = SqlAnalysisRepository(session)
    rec = repo.create("alice", "img", "Normal", 0.5, None, "low")

    assert repo.delete_for_user(rec.id, "bob") is False
    assert session.exec(select(Analysis)).first() is not None


def test_delete_by_owner(session):
    repo = SqlAnalysisRepository(session)
    rec = repo.create("alice", "img", "Normal", 0.5, None, "low")

    assert repo.delete_for_user(rec.id, "alice") is True
    assert repo.list_for_user("alice") == []
    assert repo.delete_for_user(rec.id, "alice") is False


def test_delete_with_malformed_id_is_not_found(session):
    repo = SqlAnalysisRepository(session)
    assert repo.delete_for_user("not-a-uuid", "alice") is False


def test_timestamps_are_timezone_aware():
    row = Analysis(user_id="alice", image_url="img", result="Normal", confidence=Decimal("0.5"), severity="low")
    assert row.timestamp.tzinfo is not None
    assert Analysis.__table__.c.timestamp.type.timezone is True
    assert Analysis.__table__.c.follow_up_date.type.timezone is True
