from typing import Any

from stockdesk.schemas.common import ApiResponse


def envelope(data: Any = None, *, message: str, status_code: int = 200) -> ApiResponse:
    return ApiResponse(statusCode=status_code, success=True, message=message, data=data)


def page_data(page, items: list) -> dict:
    return {"items": items, "pagination": page.meta()}
