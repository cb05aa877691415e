"""
Request validation engine.

Validates untrusted input against pydantic models and turns failures into a
single localized 422 error carrying every failing field (unless abort_early
is set). Schemas may be followed by async rules, which run only once the
schema has parsed and can report field failures or raise any AppError.
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ErrorKind, GatewayTimeoutError, ValidationError
from .i18n import Translator

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

ROOT_KEY = "__root__"
VALIDATION_ERROR_KEY = "validation:VALIDATION_ERROR"
UNKNOWN_VALIDATION_KEY = "validation:UNKNOWN_VALIDATION"


@dataclass(frozen=True)
class ValidationOptions:
    """Per-call validation behavior."""

    abort_early: bool = False
    attach_validated: bool = True
    format_errors: bool = True
    error_message: Optional[str] = None
    error_status_code: int = 422
    log_errors: bool = True


DEFAULT_OPTIONS = ValidationOptions()


class RuleViolation(Exception):
    """
    Raised by an async rule to report a field-level failure.

    The violation is reported like a schema error on `field`.
    """

    def __init__(
        self,
        field: str,
        message: str,
        translation_key: Optional[str] = None,
        code: str = "custom",
        values: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.field = field
        self.message = message
        self.translation_key = translation_key
        self.code = code
        self.values = values or {}


@dataclass
class RuleContext:
    """
    Handed to every async rule.

    `services` is whatever the caller wires in (the service container for
    HTTP requests). Rules may leave results in `state` for the handler.
    """

    services: Any = None
    language: Optional[str] = None
    state: dict[str, Any] = field(default_factory=dict)


Rule = Callable[[Any, RuleContext], Awaitable[None]]


# Pydantic error types grouped into the categories the mappings below use.
_CATEGORIES: dict[str, str] = {
    "missing": "required",
    "string_too_short": "too_small",
    "too_short": "too_small",
    "greater_than": "too_small",
    "greater_than_equal": "too_small",
    "string_too_long": "too_big",
    "too_long": "too_big",
    "less_than": "too_big",
    "less_than_equal": "too_big",
    "string_type": "invalid_type",
    "string_unicode": "invalid_type",
    "int_type": "invalid_type",
    "int_parsing": "invalid_type",
    "int_from_float": "invalid_type",
    "float_type": "invalid_type",
    "float_parsing": "invalid_type",
    "bool_type": "invalid_type",
    "bool_parsing": "invalid_type",
    "dict_type": "invalid_type",
    "model_type": "invalid_type",
    "model_attributes_type": "invalid_type",
    "list_type": "invalid_type",
    "string_pattern_mismatch": "invalid_string",
    "url_type": "invalid_string",
    "url_parsing": "invalid_string",
    "url_scheme": "invalid_string",
    "url_syntax_violation": "invalid_string",
    "url_too_long": "invalid_string",
    "date_type": "invalid_date",
    "date_parsing": "invalid_date",
    "date_from_datetime_parsing": "invalid_date",
    "date_from_datetime_inexact": "invalid_date",
    "datetime_type": "invalid_date",
    "datetime_parsing": "invalid_date",
    "datetime_from_date_parsing": "invalid_date",
    "enum": "invalid_enum_value",
    "literal_error": "invalid_literal",
    "extra_forbidden": "unrecognized_keys",
    "value_error": "custom",
    "assertion_error": "custom",
}

_EMAIL_MESSAGE_PREFIX = "value is not a valid email address"

# Highest priority: per field, keyed by pydantic error type or category.
FIELD_SPECIFIC_MAP: dict[str, dict[str, str]] = {
    "email": {
        "invalid_string": "validation:FIELDS.EMAIL.INVALID_FORMAT",
        "required": "validation:REQUIRED",
    },
    "password": {
        "too_small": "validation:FIELDS.PASSWORD.WEAK",
        "too_big": "validation:FIELDS.PASSWORD.WEAK",
        "custom": "validation:FORMATS.PASSWORD_COMPLEXITY",
        "required": "validation:REQUIRED",
    },
    "confirmPassword": {
        "password_mismatch": "validation:FIELDS.PASSWORD.CONFIRMATION_MISMATCH",
        "too_small": "validation:FIELDS.PASSWORD.WEAK",
        "too_big": "validation:FIELDS.PASSWORD.WEAK",
    },
    "confirm_password": {
        "password_mismatch": "validation:FIELDS.PASSWORD.CONFIRMATION_MISMATCH",
        "too_small": "validation:FIELDS.PASSWORD.WEAK",
        "too_big": "validation:FIELDS.PASSWORD.WEAK",
    },
    "name": {
        "too_small": "validation:FIELDS.NAME.LENGTH",
        "too_big": "validation:FIELDS.NAME.LENGTH",
    },
    "username": {
        "invalid_string": "validation:FIELDS.USERNAME.INVALID_FORMAT",
        "too_small": "validation:FIELDS.USERNAME.LENGTH",
        "too_big": "validation:FIELDS.USERNAME.LENGTH",
    },
    "date_of_birth": {
        "too_young": "validation:FIELDS.DATE_OF_BIRTH.TOO_YOUNG",
        "too_old": "validation:FIELDS.DATE_OF_BIRTH.TOO_OLD",
        "invalid_date": "validation:FIELDS.DATE_OF_BIRTH.INVALID_FORMAT",
    },
    "bio": {"too_big": "validation:FIELDS.BIO.LENGTH"},
    "website": {
        "invalid_string": "validation:FORMATS.URL_INVALID",
        "too_big": "validation:FIELDS.WEBSITE.LENGTH",
    },
    "location": {"too_big": "validation:FIELDS.LOCATION.LENGTH"},
    "avatar": {"too_big": "validation:FIELDS.AVATAR.LENGTH"},
    "cover_photo": {"too_big": "validation:FIELDS.COVER_PHOTO.LENGTH"},
}

_STRING_FORMAT_KEYS = {
    "email": "validation:FORMATS.EMAIL_INVALID",
    "url": "validation:FORMATS.URL_INVALID",
    "regex": "validation:FORMATS.REGEX_INVALID",
}

_TYPE_KEYS = {
    "string_type": "validation:MUST_BE_STRING",
    "int_type": "validation:MUST_BE_NUMBER",
    "int_parsing": "validation:MUST_BE_NUMBER",
    "int_from_float": "validation:MUST_BE_NUMBER",
    "float_type": "validation:MUST_BE_NUMBER",
    "float_parsing": "validation:MUST_BE_NUMBER",
    "bool_type": "validation:MUST_BE_BOOLEAN",
    "bool_parsing": "validation:MUST_BE_BOOLEAN",
    "dict_type": "validation:MUST_BE_OBJECT",
    "model_type": "validation:MUST_BE_OBJECT",
    "model_attributes_type": "validation:MUST_BE_OBJECT",
}

_CATEGORY_KEYS = {
    "required": "validation:REQUIRED",
    "invalid_type": "validation:TYPE_MISMATCH",
    "invalid_string": "validation:FORMAT_INVALID",
    "invalid_date": "validation:FORMATS.DATE_INVALID",
    "invalid_enum_value": "validation:ENUM_INVALID",
    "invalid_literal": "validation:LITERAL_MISMATCH",
    "unrecognized_keys": "validation:UNEXPECTED_KEYS",
    "custom": "validation:CUSTOM_VALIDATION",
    "invalid": "validation:INVALID",
}

HIGH_SEVERITY_FIELDS = frozenset({"password", "email", "username"})
HIGH_SEVERITY_CATEGORIES = frozenset({"required", "invalid_type", "custom"})
MEDIUM_SEVERITY_CATEGORIES = frozenset(
    {"invalid_string", "too_small", "too_big", "invalid_enum_value"}
)


def categorize(error_type: str) -> str:
    """Collapse a pydantic error type into a validation category."""
    return _CATEGORIES.get(error_type, "custom")


def _field_name(path: Sequence[Any]) -> str:
    for part in reversed(path):
        if isinstance(part, str):
            return part
    return ""


def _bound_kind(error_type: str) -> str:
    if error_type.startswith("string_"):
        return "string"
    if error_type in ("too_short", "too_long"):
        return "array"
    return "number"


def _string_format(error: dict[str, Any]) -> Optional[str]:
    error_type = error["type"]
    if error_type.startswith("url_"):
        return "url"
    if error_type == "string_pattern_mismatch":
        return "regex"
    if error_type == "value_error" and error.get("msg", "").startswith(_EMAIL_MESSAGE_PREFIX):
        return "email"
    return None


def _category_of(error: dict[str, Any]) -> str:
    if _string_format(error) == "email":
        return "invalid_string"
    return categorize(error["type"])


def map_translation_key(error: dict[str, Any]) -> str:
    """
    Pick the translation key for one pydantic error.

    Priority: field-specific map, then type/category map, then the
    generic unknown-validation key.
    """
    error_type = error["type"]
    category = _category_of(error)
    field_map = FIELD_SPECIFIC_MAP.get(_field_name(error.get("loc", ())), {})
    if error_type in field_map:
        return field_map[error_type]
    if category in field_map:
        return field_map[category]

    if category == "invalid_string":
        return _STRING_FORMAT_KEYS.get(_string_format(error) or "", _CATEGORY_KEYS[category])
    if category == "invalid_type" and error_type in _TYPE_KEYS:
        return _TYPE_KEYS[error_type]
    if category in ("too_small", "too_big"):
        suffix = "LENGTH" if _bound_kind(error_type) != "number" else "VALUE"
        prefix = "MIN" if category == "too_small" else "MAX"
        return f"validation:{prefix}_{suffix}"
    return _CATEGORY_KEYS.get(category, UNKNOWN_VALIDATION_KEY)


def error_severity(category: str, path: Sequence[Any]) -> str:
    if _field_name(path) in HIGH_SEVERITY_FIELDS or category in HIGH_SEVERITY_CATEGORIES:
        return "high"
    if category in MEDIUM_SEVERITY_CATEGORIES:
        return "medium"
    return "low"


def suggestion_keys(error: dict[str, Any]) -> list[tuple[str, dict[str, Any]]]:
    """Suggestion keys (with interpolation values) for one error."""
    category = _category_of(error)
    error_type = error["type"]
    name = _field_name(error.get("loc", ())).lower()
    bounds = _bounds(error.get("ctx") or {})

    if category == "invalid_string":
        fmt = _string_format(error)
        if fmt == "email":
            return [("suggestions:EMAIL_FORMAT_HELP", {})]
        if fmt == "url":
            return [("suggestions:URL_FORMAT_HELP", {})]
        if "date" in name or "birth" in name:
            return [("suggestions:DATE_FORMAT_HELP", {})]
        return []

    if category == "too_small":
        kind = _bound_kind(error_type)
        if kind == "string" and name == "password":
            return [("suggestions:PASSWORD_MIN_LENGTH", {}), ("suggestions:PASSWORD_COMPLEXITY", {})]
        if kind == "string" and name == "username":
            return [("suggestions:USERNAME_MIN_LENGTH", {})]
        key = {
            "string": "suggestions:STRING_MIN_LENGTH",
            "array": "suggestions:ARRAY_MIN_ITEMS",
        }.get(kind, "suggestions:NUMBER_MIN_VALUE")
        return [(key, bounds)]

    if category == "too_big":
        kind = _bound_kind(error_type)
        if kind == "string" and name == "bio":
            return [("suggestions:BIO_MAX_LENGTH", {})]
        if kind == "string" and name == "website":
            return [("suggestions:WEBSITE_MAX_LENGTH", {})]
        if kind == "string" and "location" in name:
            return [("suggestions:LOCATION_MAX_LENGTH", {})]
        key = {
            "string": "suggestions:STRING_MAX_LENGTH",
            "array": "suggestions:ARRAY_MAX_ITEMS",
        }.get(kind, "suggestions:NUMBER_MAX_VALUE")
        return [(key, bounds)]

    if category == "invalid_type":
        if error_type == "string_type":
            return [("suggestions:STRING_REQUIRED", {})]
        if error_type.startswith(("int_", "float_")):
            return [("suggestions:NUMBER_REQUIRED", {})]
        return [("suggestions:TYPE_EXPECTED", {"expected": error_type.split("_")[0]})]

    if category == "invalid_enum_value":
        options = (error.get("ctx") or {}).get("expected", "valid options")
        return [("suggestions:ENUM_VALUES", {"options": options})]

    if category == "invalid_date":
        if "birth" in name:
            return [("suggestions:DATE_OF_BIRTH_HELP", {})]
        return [("suggestions:DATE_FORMAT_HELP", {})]

    if category == "unrecognized_keys":
        return [("suggestions:REMOVE_UNKNOWN_FIELDS", {})]

    if category == "required":
        return [("suggestions:FIELD_REQUIRED", {})]

    if error_type == "password_complexity":
        return [("suggestions:PASSWORD_COMPLEXITY", {})]

    return [("suggestions:CUSTOM_VALIDATION_FAILED", {})]


def _bounds(ctx: dict[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key in ("min_length", "ge", "gt"):
        if key in ctx:
            values["min"] = ctx[key]
            break
    for key in ("max_length", "le", "lt"):
        if key in ctx:
            values["max"] = ctx[key]
            break
    return values


def _json_safe(ctx: Optional[dict[str, Any]]) -> dict[str, Any]:
    if not ctx:
        return {}
    return {
        key: value if isinstance(value, (str, int, float, bool, type(None))) else str(value)
        for key, value in ctx.items()
    }


def path_key(path: Sequence[Any]) -> str:
    """Dotted key for an error location; model-level errors use __root__."""
    return ".".join(str(part) for part in path) if path else ROOT_KEY


def summarize(errors: dict[str, dict[str, Any]]) -> dict[str, Any]:
    """Aggregate statistics over formatted error details."""
    fields: list[str] = []
    for detail in errors.values():
        key = path_key(detail["path"])
        if key not in fields:
            fields.append(key)

    severity = {"high": 0, "medium": 0, "low": 0}
    for detail in errors.values():
        severity[detail["severity"]] += 1

    return {
        "total_errors": len(errors),
        "field_count": len(fields),
        "severity_breakdown": severity,
        "error_types": dict(Counter(detail["code"] for detail in errors.values())),
        "affected_fields": fields,
    }


class ValidationEngine:
    """
    Runs schema validation and async rules under a time bound.

    Args:
        translator: Resolves messages and suggestions
        timeout_seconds: Upper bound for one validate() call
    """

    def __init__(self, translator: Translator, timeout_seconds: float = 10.0):
        self._translator = translator
        self._timeout = timeout_seconds

    async def validate(
        self,
        schema: Type[ModelT],
        data: Any,
        options: ValidationOptions = DEFAULT_OPTIONS,
        rules: Iterable[Rule] = (),
        source: str = "body",
        language: Optional[str] = None,
        context: Optional[RuleContext] = None,
    ) -> ModelT:
        """
        Validate data against schema, then run rules in order.

        Raises:
            ValidationError: If the schema or a rule reports field failures
            GatewayTimeoutError: If validation exceeds the time bound
            AppError: Any non-validation error raised by a rule
        """
        context = context or RuleContext(language=language)
        try:
            return await asyncio.wait_for(
                self._run(schema, data, options, tuple(rules), source, language, context),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.error("Validation of %s timed out after %ss", schema.__name__, self._timeout)
            raise GatewayTimeoutError(f"validate:{schema.__name__}", self._timeout) from None

    async def _run(
        self,
        schema: Type[ModelT],
        data: Any,
        options: ValidationOptions,
        rules: tuple[Rule, ...],
        source: str,
        language: Optional[str],
        context: RuleContext,
    ) -> ModelT:
        try:
            validated = schema.model_validate(data)
        except PydanticValidationError as exc:
            raw = exc.errors(include_url=False, include_context=True, include_input=False)
            raise self._failure(schema, raw, options, source, language) from None

        violations: list[dict[str, Any]] = []
        for rule in rules:
            try:
                await rule(validated, context)
            except RuleViolation as violation:
                violations.append(
                    {
                        "type": violation.code,
                        "loc": (violation.field,),
                        "msg": violation.message,
                        "ctx": violation.values,
                        "translation_key": violation.translation_key,
                    }
                )
                if options.abort_early:
                    break
        if violations:
            raise self._failure(schema, violations, options, source, language)

        if options.log_errors:
            logger.debug("Validation of %s succeeded", schema.__name__)
        return validated

    def _failure(
        self,
        schema: Type[BaseModel],
        raw_errors: list[dict[str, Any]],
        options: ValidationOptions,
        source: str,
        language: Optional[str],
    ) -> ValidationError:
        if options.abort_early:
            raw_errors = raw_errors[:1]

        if options.format_errors:
            errors = self.format_errors(raw_errors, source, language)
            metadata: dict[str, Any] = {"errors": errors, "summary": summarize(errors)}
        else:
            metadata = {
                "errors": [
                    {
                        "type": err["type"],
                        "loc": list(err.get("loc", ())),
                        "msg": err.get("msg", ""),
                    }
                    for err in raw_errors
                ]
            }

        if options.log_errors:
            logger.warning(
                "Validation of %s failed with %d error(s) on %s",
                schema.__name__,
                len(raw_errors),
                ", ".join(path_key(err.get("loc", ())) for err in raw_errors),
            )

        return ValidationError(
            options.error_message or "Validation error",
            kind=ErrorKind.from_status(options.error_status_code),
            code=ErrorKind.UNPROCESSABLE_ENTITY.code,
            translation_key=VALIDATION_ERROR_KEY,
            metadata=metadata,
            prioritize_message=options.error_message is not None,
        )

    def format_errors(
        self,
        raw_errors: list[dict[str, Any]],
        source: str = "body",
        language: Optional[str] = None,
    ) -> dict[str, dict[str, Any]]:
        """Turn pydantic-style error dicts into keyed, localized details."""
        formatted: dict[str, dict[str, Any]] = {}
        seen: Counter = Counter()

        for error in raw_errors:
            path = list(error.get("loc", ()))
            base_key = path_key(path)
            count = seen[base_key]
            seen[base_key] += 1
            key = f"{base_key}[{count}]" if count else base_key

            category = _category_of(error)
            translation_key = error.get("translation_key") or map_translation_key(error)
            ctx = error.get("ctx") or {}
            values = {"field": base_key, "path": base_key, **_bounds(ctx), **_json_safe(ctx)}

            formatted[key] = {
                "message": self._translator.resolve_message(
                    translation_key,
                    message=error.get("msg"),
                    language=language,
                    values=values,
                ),
                "translation_key": translation_key,
                "path": path,
                "code": category,
                "location": source,
                "type": error["type"],
                "details": _json_safe(ctx),
                "severity": error_severity(category, path),
                "suggestions": [
                    {
                        "key": suggestion,
                        "message": self._translator.resolve_message(
                            suggestion, language=language, values=suggestion_values
                        ),
                    }
                    for suggestion, suggestion_values in suggestion_keys(error)
                ],
            }
        return formatted
