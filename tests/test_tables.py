"""Tests for the storage model."""

import datetime

from realvisit.core.classifier import VisitorType
from realvisit.models.tables import Snapshot, SnapshotStatus, Visit


class TestSnapshot:
    def test_mark_completed(self):
        snapshot = Snapshot(number=1, status=SnapshotStatus.ACTIVE)
        at = datetime.datetime(2026, 1, 6, 12, 0, tzinfo=datetime.timezone.utc)
        snapshot.mark_completed(now=at)
        assert snapshot.status == SnapshotStatus.COMPLETED
        assert snapshot.completed_at == at

    def test_mark_completed_defaults_to_now(self):
        snapshot = Snapshot(number=2, status=SnapshotStatus.ACTIVE)
        snapshot.mark_completed()
        assert snapshot.completed_at.tzinfo is not None

    def test_project_number_unique(self):
        index = next(i for i in Snapshot.__table__.indexes if i.name == "ix_snapshots_project_number")
        assert index.unique is True
        assert [c.name for c in index.columns] == ["project_id", "number"]


class TestVisit:
    def test_one_row_per_session_per_snapshot(self):
        index = next(i for i in Visit.__table__.indexes if i.name == "ix_visits_session_snapshot")
        assert index.unique is True
        assert [c.name for c in index.columns] == ["session_id", "snapshot_id"]

    def test_verdict_defaults_to_pending(self):
        assert Visit.__table__.c.visitor_type.default.arg == VisitorType.PENDING

    def test_mouse_trail_not_stored(self):
        assert "mouse_samples" not in Visit.__table__.c
