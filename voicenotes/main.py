import asyncio
import logging

from arq import create_pool
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from voicenotes.api.v1.router import api_router
from voicenotes.common.common_message import CommonMessage
from voicenotes.common.exceptions import AppError
from voicenotes.common.response_common import ResponseCommon
from voicenotes.config import settings
from voicenotes.core.middleware import MULTIPART_OVERHEAD_BYTES, UploadSizeLimitMiddleware
from voicenotes.core.redis_config import REDIS_SETTINGS

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Voice Notes API", version="1.0.0", docs_url="/docs")

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(
    UploadSizeLimitMiddleware,
    limits={
        "/uploadAudio": settings.MAX_UPLOAD_BYTES + MULTIPART_OVERHEAD_BYTES,
        "/uploadAudioChunk": settings.MAX_CHUNK_BYTES + MULTIPART_OVERHEAD_BYTES,
    },
    messages={
        "/uploadAudio": CommonMessage.FILE_TOO_LARGE.format(limit=settings.MAX_UPLOAD_BYTES // (1024 * 1024)),
        "/uploadAudioChunk": CommonMessage.CHUNK_TOO_LARGE.format(limit=settings.MAX_CHUNK_BYTES // (1024 * 1024)),
    },
)

# Include API routes
app.include_router(api_router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return ResponseCommon.error_response(message=exc.message, code=exc.code).to_response()


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'][1:]) or 'body'}: {error['msg']}"
        for error in exc.errors()
    )
    return ResponseCommon.error_response(message=f"Invalid request: {errors}").to_response()


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return ResponseCommon.error_response(message=str(exc.detail), code=exc.status_code).to_response()


@app.on_event("startup")
async def startup_event():
    """Create database tables on startup with retry logic"""
    from voicenotes.db.session import engine
    from voicenotes.models import Recording

    max_retries = 5
    retry_delay = 2

    for attempt in range(max_retries):
        try:
            Recording.metadata.create_all(bind=engine)
            logger.info("Database tables created successfully")
            break
        except Exception as e:
            logger.warning(f"Database connection attempt {attempt + 1} failed: {e}")
            if attempt < max_retries - 1:
                await asyncio.sleep(retry_delay)
            else:
                logger.error("Failed to connect to database after all retries")
                raise

    if settings.AUTH_PROVIDER.lower() == "firebase":
        from voicenotes.core.firebase_config import init_firebase

        init_firebase()

    if settings.PROCESSING_MODE.lower() == "queued":
        app.state.arq_pool = await create_pool(REDIS_SETTINGS)


@app.on_event("shutdown")
async def shutdown_event():
    if getattr(app.state, "arq_pool", None) is not None:
        await app.state.arq_pool.close()
