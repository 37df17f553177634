from __future__ import annotations

from fastapi.responses import JSONResponse

from interior_api.models.contracts import ErrorResponse

NOT_FOUND_RESPONSES: dict[int | str, dict] = {404: {"model": ErrorResponse}}


def error_response(
    status: int,
    code: str,
    message: str,
    *,
    retryable: bool = False,
    detail: str | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(
            error=code, message=message, retryable=retryable, detail=detail
        ).model_dump(),
    )
