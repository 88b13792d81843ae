class CommonMessage:
    UNAUTHORIZED_MISSING_TOKEN = "Unauthorized: Missing token"
    UNAUTHORIZED_INVALID_TOKEN = "Unauthorized: Invalid token"

    NO_FILE_UPLOADED = "No file uploaded"
    UNSUPPORTED_FILE_TYPE = "Unsupported file type"
    FILE_TOO_LARGE = "File size exceeds {limit}MB limit"
    CHUNK_TOO_LARGE = "Chunk size exceeds {limit}MB limit"
    MISSING_CHUNK_METADATA = "Missing chunk or metadata"
    MISSING_FINALIZE_FIELDS = "Missing sessionId or totalChunks"
    MISSING_FIELDS = "Missing fields: {fields}"

    FILE_UPLOADED_SUCCESS = "File uploaded successfully"
    DUPLICATE_REQUEST = "Duplicate request"
    CHUNK_UPLOADED_SUCCESS = "Chunk {index} uploaded successfully"

    SESSION_NOT_FOUND = "Session not found"
    INVALID_SESSION_DATA = "Invalid session data"
    NOT_ALL_CHUNKS_UPLOADED = "Not all chunks uploaded"
    MISSING_CHUNK = "Missing chunk {index}"

    INVALID_OR_ALREADY_PROCESSED = "Invalid or already processed recording"
    PROCESSING_COMPLETED = "Processing completed"
    PROCESSING_FAILED = "Processing failed: {error}"
    PROCESSING_TIMED_OUT = "Processing timed out"

    HASHING_FAILED = "Failed to compute file hash"

    RECORDING_NOT_FOUND = "Recording not found or unauthorized"
    RECORDING_DELETED = "Recording deleted"
    ALL_RECORDINGS_DELETED = "All recordings deleted"

    API_RUNNING = "API is running"
