"""git-credentials: file-backed credential resolution for git transports."""

from git_credentials.credentials import (
    CredentialStore,
    GitCredentialsProvider,
    PlaintextCredential,
    SshKeyCredential,
)
from git_credentials.enums import CredentialKind, UrlProtocol

__version__ = "0.1.0"

__all__ = [
    "CredentialKind",
    "CredentialStore",
    "GitCredentialsProvider",
    "PlaintextCredential",
    "SshKeyCredential",
    "UrlProtocol",
    "__version__",
]
