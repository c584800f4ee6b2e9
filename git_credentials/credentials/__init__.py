"""Credential store and the git authentication callback.

Key Components:
    - CredentialStore: Loads, validates and searches the credentials file
    - GitCredentialsProvider: Resolves one authentication round for a transport
    - PlaintextCredential / SshKeyCredential: Typed credentials it returns
"""

from git_credentials.exceptions import (
    BackendNotAvailableError,
    CredentialError,
    CredentialNotFoundError,
)

from .environment_backend import EnvironmentBackend
from .keyring_backend import KeyringBackend
from .models import (
    AuthenticationRequest,
    CredentialDefinition,
    CredentialEntry,
    PlaintextCredential,
    SshKeyCredential,
    TypedCredential,
)
from .provider import GitCredentialsProvider
from .references import SecretReferenceResolver, get_resolver, set_resolver
from .store import CredentialStore, InvalidCredentials, LoadResult, ValidCredentials, load_credentials

__all__ = [
    # Store
    "CredentialStore",
    "LoadResult",
    "ValidCredentials",
    "InvalidCredentials",
    "load_credentials",
    # Resolver
    "GitCredentialsProvider",
    # Models
    "AuthenticationRequest",
    "CredentialDefinition",
    "CredentialEntry",
    "PlaintextCredential",
    "SshKeyCredential",
    "TypedCredential",
    # Secret references
    "SecretReferenceResolver",
    "EnvironmentBackend",
    "KeyringBackend",
    "get_resolver",
    "set_resolver",
    # Exceptions
    "CredentialError",
    "CredentialNotFoundError",
    "BackendNotAvailableError",
]
