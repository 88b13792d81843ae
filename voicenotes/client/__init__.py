from .api_client import ApiClientError, RecordingsApiClient
from .cache import RecordingsCache

__all__ = ["ApiClientError", "RecordingsApiClient", "RecordingsCache"]
