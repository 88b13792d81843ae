import json
from typing import Any

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import Response
from pydantic import Field

from voicenotes.schemas.recording import ApiResponse


class ResponseCommon(ApiResponse):
    code: int = Field(default=status.HTTP_200_OK, exclude=True)

    def to_json(self) -> dict:
        return jsonable_encoder(self.model_dump(by_alias=True, exclude_none=True))

    def to_response(self) -> Response:
        return Response(
            content=json.dumps(self.to_json()),
            status_code=self.code,
            media_type="application/json",
        )

    @classmethod
    def success_response(
        cls,
        message: str = None,
        code: int = status.HTTP_200_OK,
        **data: Any,
    ) -> "ResponseCommon":
        return cls(code=code, success=True, message=message, **data)

    @classmethod
    def error_response(
        cls,
        message: str,
        code: int = status.HTTP_400_BAD_REQUEST,
        **data: Any,
    ) -> "ResponseCommon":
        return cls(code=code, success=False, message=message, **data)
