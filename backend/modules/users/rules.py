"""
Async validation rules for user requests.

Rules run after the request schema has parsed. They reach the services
through the rule context and either pass, record a result in
`context.state`, or raise an AppError that ends the request.
"""

from shared.validation import RuleContext

from .exceptions import EmailAlreadyExistsError, EmailNotRegisteredError
from .models import ForgotPasswordRequest, LoginRequest, RegisterRequest


async def email_available(data: RegisterRequest, context: RuleContext) -> None:
    """Reject registration with a taken email (409)."""
    if await context.services.users.email_exists(data.email):
        raise EmailAlreadyExistsError(data.email)


async def valid_credentials(data: LoginRequest, context: RuleContext) -> None:
    """Authenticate and keep the user for the login handler (401 otherwise)."""
    context.state["user"] = await context.services.users.authenticate(data.email, data.password)


async def email_registered(data: ForgotPasswordRequest, context: RuleContext) -> None:
    """Reject password reset requests for unknown emails (404)."""
    if not await context.services.users.email_exists(data.email):
        raise EmailNotRegisteredError(data.email)
