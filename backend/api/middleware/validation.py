"""
Request validation dependencies.

Route handlers declare what they expect and receive the parsed model:

    @router.post("/register")
    async def register(data: RegisterRequest = Depends(validated_body(RegisterRequest, email_available))):
        ...

Failures never reach the handler; the validation engine raises a single
422 carrying every failing field.
"""

import json
from typing import Any, Awaitable, Callable, Optional, Type

from fastapi import Depends, Request
from pydantic import BaseModel

from shared.exceptions import BadRequestError
from shared.validation import DEFAULT_OPTIONS, Rule, RuleContext, ValidationOptions

from ..dependencies import ServiceContainer, get_container


def _language(request: Request) -> Optional[str]:
    return getattr(request.state, "language", None)


async def _read_json(request: Request) -> Any:
    body = await request.body()
    if not body.strip():
        return {}
    try:
        return json.loads(body)
    except ValueError:
        raise BadRequestError(
            "Request body must be a valid JSON object.",
            translation_key="validation:MUST_BE_OBJECT",
            interpolation={"field": "body"},
        ) from None


async def _read_path(request: Request) -> dict[str, Any]:
    return dict(request.path_params)


def _validator(
    source: str,
    read: Callable[[Request], Awaitable[Any]],
    schema: Type[BaseModel],
    rules: tuple[Rule, ...],
    options: Optional[ValidationOptions],
):
    options = options or DEFAULT_OPTIONS

    async def dependency(
        request: Request,
        container: ServiceContainer = Depends(get_container),
    ) -> BaseModel:
        data = await read(request)

        context = RuleContext(services=container, language=_language(request))
        validated = await container.validation.validate(
            schema,
            data,
            options=options,
            rules=rules,
            source=source,
            language=context.language,
            context=context,
        )
        if options.attach_validated:
            request.state.validated = validated
            request.state.validation_context = context
        return validated

    return dependency


def validated_body(
    schema: Type[BaseModel],
    *rules: Rule,
    options: Optional[ValidationOptions] = None,
):
    """Dependency validating the JSON body against schema, then rules."""
    return _validator("body", _read_json, schema, rules, options)


def validated_params(
    schema: Type[BaseModel],
    *rules: Rule,
    options: Optional[ValidationOptions] = None,
):
    """Dependency validating path parameters."""
    return _validator("params", _read_path, schema, rules, options)


def get_validation_state(request: Request) -> dict[str, Any]:
    """Values async rules left for the handler (e.g. the authenticated user)."""
    context: Optional[RuleContext] = getattr(request.state, "validation_context", None)
    return context.state if context is not None else {}
