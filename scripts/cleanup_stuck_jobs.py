from voicenotes.db.session import SessionLocal
from voicenotes.services.deduplication_service import deduplication_service
from voicenotes.services.processing_service import reconcile_stuck_recordings


def main() -> None:
    db = SessionLocal()
    try:
        failed = reconcile_stuck_recordings(db)
        print(f"Marked {failed} stuck recordings as failed")

        expired = deduplication_service.sweep_expired(db)
        print(f"Deleted {expired} expired deduplication records")
    finally:
        db.close()


if __name__ == "__main__":
    main()
