"""
Request context middleware.

Tags every request with a correlation id and the language its messages
should be translated into.

Language precedence: ?lang= query parameter, `lang` cookie, the
Accept-Language header, then the default language. Whenever the language
did not come from the cookie, the response (re)sets the cookie so later
requests keep the choice.
"""

import logging
import re
from typing import Iterable, Optional
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
LANGUAGE_COOKIE = "lang"
LANGUAGE_COOKIE_MAX_AGE = 30 * 24 * 60 * 60

_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


def parse_accept_language(header: Optional[str]) -> list[str]:
    """
    Languages from an Accept-Language header, best first.

    "vi-VN,vi;q=0.9,en;q=0.8" -> ["vi-VN", "vi", "en"]
    """
    if not header:
        return []

    weighted = []
    for index, part in enumerate(header.split(",")):
        tag, _, params = part.strip().partition(";")
        tag = tag.strip()
        if not tag or tag == "*":
            continue
        quality = 1.0
        params = params.strip()
        if params.startswith("q="):
            try:
                quality = float(params[2:])
            except ValueError:
                quality = 0.0
        if quality > 0:
            weighted.append((-quality, index, tag))
    return [tag for _, _, tag in sorted(weighted)]


def match_language(candidate: Optional[str], supported: Iterable[str]) -> Optional[str]:
    """Supported language for a tag: exact match first, then its base language."""
    if not candidate:
        return None
    supported = [language.lower() for language in supported]
    candidate = candidate.strip().lower()
    if candidate in supported:
        return candidate
    base = candidate.split("-")[0]
    return base if base in supported else None


def resolve_language(
    request: Request,
    supported: Iterable[str],
    default: str,
) -> tuple[str, str]:
    """
    Pick the request language.

    Returns:
        (language, source) where source is "query", "cookie", "header" or "default"
    """
    supported = list(supported)

    language = match_language(request.query_params.get("lang"), supported)
    if language:
        return language, "query"

    language = match_language(request.cookies.get(LANGUAGE_COOKIE), supported)
    if language:
        return language, "cookie"

    for tag in parse_accept_language(request.headers.get("accept-language")):
        language = match_language(tag, supported)
        if language:
            return language, "header"

    return default, "default"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Stores `request.state.request_id` and `request.state.language`.

    An incoming X-Request-ID is reused when it looks sane; otherwise a new
    id is generated. The id is echoed back on every response.
    """

    def __init__(
        self,
        app: ASGIApp,
        supported_languages: Iterable[str] = ("en",),
        default_language: str = "en",
        secure_cookie: bool = False,
    ) -> None:
        super().__init__(app)
        self.supported_languages = list(supported_languages)
        self.default_language = default_language
        self.secure_cookie = secure_cookie

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER)
        request_id = incoming if incoming and _REQUEST_ID_PATTERN.match(incoming) else uuid4().hex
        language, source = resolve_language(
            request, self.supported_languages, self.default_language
        )
        request.state.request_id = request_id
        request.state.language = language

        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id
        if source != "cookie":
            response.set_cookie(
                LANGUAGE_COOKIE,
                language,
                max_age=LANGUAGE_COOKIE_MAX_AGE,
                httponly=True,
                samesite="lax",
                secure=self.secure_cookie,
            )
        logger.debug(
            "%s %s [%s] lang=%s (%s) -> %d",
            request.method,
            request.url.path,
            request_id,
            language,
            source,
            response.status_code,
        )
        return response
