import threading
from typing import Dict, List, Optional

from voicenotes.common.constants import RecordingStatus

# Recordings in these states never change again
CACHEABLE_STATUSES = {RecordingStatus.PROCESSED.value, RecordingStatus.FAILED.value}


def is_settled(recording: dict) -> bool:
    return recording.get("status") in CACHEABLE_STATUSES


class RecordingsCache:
    """
    Client-side cache of fetched recordings.

    Owned by whoever displays the recordings and invalidated explicitly after
    uploads and deletes. Only recordings that reached ``processed`` or
    ``failed`` are kept, so polling a recording still in flight always goes
    back to the server. A listing is kept only while every item is settled.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._items: Dict[str, dict] = {}
        self._listing: Optional[List[str]] = None

    def put_listing(self, recordings: List[dict]) -> None:
        with self._lock:
            self._items = {item["recordingId"]: item for item in recordings if is_settled(item)}
            if all(is_settled(item) for item in recordings):
                self._listing = [item["recordingId"] for item in recordings]
            else:
                self._listing = None

    def get_listing(self) -> Optional[List[dict]]:
        with self._lock:
            if self._listing is None:
                return None
            return [self._items[recording_id] for recording_id in self._listing if recording_id in self._items]

    def put(self, recording: dict) -> None:
        with self._lock:
            if is_settled(recording):
                self._items[recording["recordingId"]] = recording
            else:
                self._items.pop(recording["recordingId"], None)
                self._listing = None

    def get(self, recording_id: str) -> Optional[dict]:
        with self._lock:
            return self._items.get(recording_id)

    def invalidate(self, recording_id: str) -> None:
        with self._lock:
            self._items.pop(recording_id, None)
            self._listing = None

    def invalidate_all(self) -> None:
        with self._lock:
            self._items.clear()
            self._listing = None
