"""Pydantic field types that resolve secret references while validating.

A failed reference becomes an ordinary validation error, so it is reported
together with every other problem in the credentials file.
"""

from typing import Annotated, Any

from pydantic import BeforeValidator, SecretStr
from pydantic_core import PydanticCustomError

from git_credentials.exceptions import CredentialError

from .references import get_resolver


def resolve_credential_secret(value: Any) -> Any:
    """Validator function resolving a secret reference into SecretStr.

    Non-string values are passed through so pydantic reports their type
    error itself.

    Args:
        value: Input value (secret reference or literal secret)

    Returns:
        SecretStr with the resolved value

    Raises:
        PydanticCustomError: If the reference cannot be resolved
    """
    if isinstance(value, SecretStr) or not isinstance(value, str):
        return value

    try:
        resolved = get_resolver().resolve(value)
    except CredentialError as e:
        raise PydanticCustomError(
            "credential_resolution_error",
            "{detail}",
            {"detail": e.message, "reference": e.reference},
        ) from e

    return SecretStr(resolved)


# Resolves to SecretStr so secrets never appear in reprs or logs
CredentialSecret = Annotated[SecretStr, BeforeValidator(resolve_credential_secret)]


__all__ = [
    "CredentialSecret",
    "resolve_credential_secret",
]
