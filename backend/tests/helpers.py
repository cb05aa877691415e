"""Constants and small helpers shared by test modules."""

API = "/v1/api"

VALID_REGISTRATION = {
    "name": "Alice Nguyen",
    "email": "alice@example.com",
    "password": "Secret1!",
    "confirmPassword": "Secret1!",
    "date_of_birth": "1995-04-12",
}


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
