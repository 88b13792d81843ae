import json
import logging
from typing import Dict

from fastapi import HTTPException, status

from voicenotes.common.common_message import CommonMessage

logger = logging.getLogger(__name__)

# Room for multipart boundaries and the metadata fields next to the file part
MULTIPART_OVERHEAD_BYTES = 1024 * 1024


class UploadSizeLimitMiddleware:
    """
    Reject unauthenticated or oversized upload bodies before they are buffered.

    A request without a bearer token, or with a declared Content-Length over
    the limit, is refused without reading the body. Otherwise the body is
    counted as it streams in and parsing is aborted with a 400 as soon as the
    running total passes the limit.
    """

    def __init__(self, app, limits: Dict[str, int], messages: Dict[str, str] = None):
        self.app = app
        self.limits = limits
        self.messages = messages or {}

    async def _reject(self, send, status_code: int, message: str) -> None:
        body = json.dumps({"success": False, "message": message}).encode()
        await send(
            {
                "type": "http.response.start",
                "status": status_code,
                "headers": [
                    (b"content-type", b"application/json"),
                    (b"content-length", str(len(body)).encode()),
                ],
            }
        )
        await send({"type": "http.response.body", "body": body})

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or scope.get("method") != "POST":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        limit = self.limits.get(path)
        if limit is None:
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers") or [])
        # Presence only; the token itself is verified by the route dependency
        if not headers.get(b"authorization", b"").startswith(b"Bearer "):
            await self._reject(send, status.HTTP_401_UNAUTHORIZED, CommonMessage.UNAUTHORIZED_MISSING_TOKEN)
            return

        too_large = self.messages.get(path, "Payload too large")
        content_length = headers.get(b"content-length")
        if content_length is not None and content_length.isdigit() and int(content_length) > limit:
            logger.warning("Rejected %s upload with Content-Length %s", path, content_length.decode())
            await self._reject(send, status.HTTP_400_BAD_REQUEST, too_large)
            return

        received = 0

        async def limited_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    logger.warning("Aborted %s upload after %d bytes", path, received)
                    # Propagates unchanged through FastAPI's body parsing
                    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=too_large)
            return message

        await self.app(scope, limited_receive, send)
