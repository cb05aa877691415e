"""
Success envelope helper.

Every 2xx body is {"message": <translated>, "result": <payload>}.
"""

from typing import Any

from fastapi import Request

from shared.models import SuccessResponse

from .errors import get_language


def success(request: Request, translation_key: str, result: Any = None) -> SuccessResponse:
    """Build a success envelope with the message in the request language."""
    message = request.app.state.translator.resolve_message(
        translation_key,
        language=get_language(request),
        default="Success.",
    )
    return SuccessResponse(message=message, result=result)
