from http import HTTPStatus

from stockdesk.core.observability import ERROR_CODES
from stockdesk.schemas.common import ErrorOut


def _example(status_code: int) -> dict:
    return {
        "statusCode": status_code,
        "success": False,
        "message": HTTPStatus(status_code).phrase,
        "data": None,
        "error": {
            "code": ERROR_CODES.get(status_code, "http_error"),
            "request_id": "request-id",
            "path": "/api/example",
            "details": None,
        },
    }


def error_responses(*status_codes: int) -> dict[int, dict]:
    """OpenAPI ``responses=`` entries documenting the error envelope for each status."""
    return {
        status_code: {
            "model": ErrorOut,
            "description": HTTPStatus(status_code).phrase,
            "content": {"application/json": {"example": _example(status_code)}},
        }
        for status_code in status_codes
    }
