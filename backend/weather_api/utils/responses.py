"""
Response Envelope
=================

Every response, success or error, has the same shape:

    {"status": 200, "message": "Got all user data", ...payload}

Errors are raised as HTTPException and rendered by the handlers in main.py.
"""

import logging
from contextlib import contextmanager
from typing import Any

from fastapi import HTTPException

from weather_api.utils.serialization import to_jsonable

logger = logging.getLogger(__name__)


def envelope(status: int, message: str, **payload: Any) -> dict:
    """Build a response body with JSON-ready payload values."""
    body = {"status": status, "message": message}
    body.update({key: to_jsonable(value) for key, value in payload.items()})
    return body


@contextmanager
def server_errors(message: str):
    """
    Turn unexpected failures inside an operation into a 500.

    HTTPExceptions pass through untouched. Anything else is logged and
    re-raised as a 500 whose detail is `message` plus the raw error.

    Usage:
        with server_errors("Failed to get all weather data readings."):
            page = await catalog.list_readings(page, limit)
    """
    try:
        yield
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(message)
        raise HTTPException(status_code=500, detail=f"{message} {e}")
