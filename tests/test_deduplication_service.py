from voicenotes.models import Deduplication
from voicenotes.services.deduplication_service import DeduplicationService

T0 = 1_700_000_010_000


def test_signature_is_owner_size_and_window():
    dedup = DeduplicationService(ttl_seconds=30)
    assert dedup.build_signature("u1", 1024, T0) == f"u1_1024_{T0 // 30000}"
    assert dedup.build_signature("u1", 1024, T0) != dedup.build_signature("u2", 1024, T0)
    assert dedup.build_signature("u1", 1024, T0) != dedup.build_signature("u1", 1025, T0)


def test_same_owner_and_size_within_window_is_duplicate(db):
    dedup = DeduplicationService(ttl_seconds=30)
    first = dedup.check(db, "u1", 10, T0)
    assert not first.is_duplicate
    dedup.register(db, first.signature, "rec-1", "u1", T0)
    db.commit()

    second = dedup.check(db, "u1", 10, T0 + 1000)
    assert second.is_duplicate
    assert second.recording_id == "rec-1"

    assert not dedup.check(db, "u2", 10, T0 + 1000).is_duplicate
    assert not dedup.check(db, "u1", 11, T0 + 1000).is_duplicate


def test_next_window_is_not_a_duplicate(db):
    dedup = DeduplicationService(ttl_seconds=30)
    first = dedup.check(db, "u1", 10, T0)
    dedup.register(db, first.signature, "rec-1", "u1", T0)
    db.commit()

    assert not dedup.check(db, "u1", 10, T0 + 60_000).is_duplicate


def test_sweep_removes_only_expired_entries(db):
    dedup = DeduplicationService(ttl_seconds=30)
    db.add(Deduplication(signature="old", recording_id="r1", user_id="u1", timestamp=T0 - 60_000))
    db.add(Deduplication(signature="fresh", recording_id="r2", user_id="u1", timestamp=T0 - 1000))
    db.commit()

    assert dedup.sweep_expired(db, T0) == 1
    assert db.get(Deduplication, "old") is None
    assert db.get(Deduplication, "fresh") is not None


def test_forget_recordings_drops_their_entries(db):
    dedup = DeduplicationService(ttl_seconds=30)
    db.add(Deduplication(signature="s1", recording_id="r1", user_id="u1", timestamp=T0))
    db.add(Deduplication(signature="s2", recording_id="r2", user_id="u1", timestamp=T0))
    db.commit()

    assert dedup.forget_recordings(db, ["r1"]) == 1
    db.commit()
    assert db.query(Deduplication).count() == 1
    assert dedup.forget_recordings(db, []) == 0
