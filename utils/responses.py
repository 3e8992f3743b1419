"""
JSON envelope shared by the app's own endpoints: {ok, data, error, message}.

The auth routes and the Stripe webhook answer in their own shapes.
"""
from typing import Any, Optional

from fastapi.responses import JSONResponse


def _envelope(ok: bool, status: int, data: Optional[dict], error: Optional[str], message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={
            "ok": ok,
            "data": data or {},
            "error": error,
            "message": message,
        }
    )


def success_response(data: Any = None, message: str = "OK", status: int = 200) -> JSONResponse:
    return _envelope(True, status, data, None, message)


def error_response(error_code: str, status: int = 400, message: str = "An error occurred", data: Optional[dict] = None) -> JSONResponse:
    return _envelope(False, status, data, error_code, message)


def limit_reached_response(error_code: str, message: str, needs_upgrade: bool = True) -> JSONResponse:
    """
    403 for a free-tier cap. needs_upgrade tells the frontend to show the
    upgrade prompt; it is False when the caller cannot upgrade the plan
    (a public submitter hitting the form owner's limit).
    """
    return error_response(error_code, status=403, message=message, data={"needs_upgrade": needs_upgrade})
