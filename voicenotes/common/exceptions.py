from fastapi import status

from voicenotes.common.common_message import CommonMessage


class AppError(Exception):
    """Base error carrying the HTTP status it is reported with."""

    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str = None, code: int = None):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        super().__init__(self.message)


class Unauthorized(AppError):
    code = status.HTTP_401_UNAUTHORIZED
    default_message = CommonMessage.UNAUTHORIZED_INVALID_TOKEN


class ValidationError(AppError):
    code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class PayloadTooLarge(ValidationError):
    default_message = "Payload too large"


class UnsupportedMediaType(ValidationError):
    default_message = CommonMessage.UNSUPPORTED_FILE_TYPE


class MissingField(ValidationError):
    pass


class IncompleteSession(ValidationError):
    default_message = CommonMessage.NOT_ALL_CHUNKS_UPLOADED


class NotFound(AppError):
    code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class SessionNotFound(NotFound):
    # Reported as a bad finalize request rather than a missing route
    code = status.HTTP_400_BAD_REQUEST
    default_message = CommonMessage.SESSION_NOT_FOUND


class NotFoundOrUnauthorized(NotFound):
    default_message = CommonMessage.RECORDING_NOT_FOUND


class ConflictOrAlreadyProcessed(AppError):
    code = status.HTTP_400_BAD_REQUEST
    default_message = CommonMessage.INVALID_OR_ALREADY_PROCESSED


InvalidOrAlreadyProcessed = ConflictOrAlreadyProcessed


class UpstreamFailure(AppError):
    default_message = "Upstream call failed"


class HashingFailed(UpstreamFailure):
    default_message = CommonMessage.HASHING_FAILED


class StorageError(UpstreamFailure):
    default_message = "Object store call failed"


class CapabilityError(UpstreamFailure):
    default_message = "Transcription or summarization call failed"


class QueueError(UpstreamFailure):
    default_message = "Failed to queue processing task"


class InternalError(AppError):
    pass
