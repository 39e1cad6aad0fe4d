from typing import Any

from fastapi.responses import JSONResponse


def success(data: Any = None, *, description: str = "ok", status_code: int = 200) -> dict:
    """Body of every successful response; the route's status code mirrors `code`."""
    return {
        "status": "success",
        "code": status_code,
        "description": description,
        "data": data,
    }


def error_response(status_code: int, description: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "error",
            "code": status_code,
            "description": description,
            "data": None,
        },
    )
