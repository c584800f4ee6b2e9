"""Enumerations for credential kinds and git URL protocols."""

from enum import Enum


class CredentialKind(str, Enum):
    """Authentication mechanisms a credentials entry can provide.

    The set is closed: construction code matches every member explicitly
    and rejects anything else.
    """

    PLAINTEXT = "plaintext"
    SSH_KEY = "ssh_key"

    def __str__(self) -> str:
        return self.value


class UrlProtocol(str, Enum):
    """Network protocols a git remote URL can use.

    Both ``ssh://user@host/path`` and scp-style ``user@host:path`` URLs
    map to :attr:`SSH`.
    """

    HTTP = "http"
    HTTPS = "https"
    SSH = "ssh"
    GIT = "git"

    def __str__(self) -> str:
        return self.value
