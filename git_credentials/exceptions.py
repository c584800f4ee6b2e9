"""Custom exception hierarchy for git-credentials.

This module defines a structured exception hierarchy that lets the git
transport, the CLI and library callers tell apart the different ways a
credential lookup can fail, and that carries the details needed for a
user-facing message.

Exception Hierarchy:
    GitCredentialsError (base)
    ├── ConfigurationError
    ├── CredentialError
    │   ├── CredentialNotFoundError
    │   └── BackendNotAvailableError
    ├── CredentialResolutionError
    │   ├── CredentialsFileMissingError
    │   ├── CredentialsFileInvalidError
    │   ├── NoCredentialsForUrlError
    │   ├── UnsupportedProtocolError
    │   └── CredentialTypeNotAllowedError
    └── GitOperationError

Example Usage:
    >>> from git_credentials.exceptions import CredentialResolutionError
    >>> try:
    ...     provider.resolve(url, None, {"plaintext"})
    ... except CredentialResolutionError as e:
    ...     print(e.message)
"""

from collections.abc import Collection, Sequence


class GitCredentialsError(Exception):
    """Base exception for all git-credentials errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        """Initialize exception.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(GitCredentialsError):
    """Configuration-related errors.

    Raised when settings are invalid or contain incompatible values.
    """

    pass


class CredentialError(GitCredentialsError):
    """A secret reference in the credentials file could not be resolved.

    Subclasses:
    - CredentialNotFoundError: Referenced secret doesn't exist
    - BackendNotAvailableError: Storage backend unavailable

    Attributes:
        message: Human-readable error description
        reference: The credential reference that failed (e.g., "@keyring:github/token")
        suggestion: Optional suggestion for resolution
    """

    def __init__(
        self,
        message: str,
        reference: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            reference: The credential reference that failed
            suggestion: Optional suggestion for resolution
        """
        self.reference = reference
        self.suggestion = suggestion

        full_message = message
        if reference:
            full_message = f"{message} (reference: {reference})"
        if suggestion:
            full_message = f"{full_message}\nSuggestion: {suggestion}"

        super().__init__(full_message)
        # Preserve original message (super sets self.message to full_message)
        self.message = message


class CredentialNotFoundError(CredentialError):
    """Secret is referenced in the credentials file but not in its backend."""

    pass


class BackendNotAvailableError(CredentialError):
    """Requested backend is not available on this system."""

    pass


class CredentialResolutionError(GitCredentialsError):
    """The authentication callback could not produce a credential.

    Every failure of the resolver is one of the subclasses below. All of them
    are fatal to the current authentication round; the transport decides
    whether to abort the operation or to call again with other parameters.

    Attributes:
        message: Human-readable error description
        url: The remote URL being resolved, when known
    """

    def __init__(self, message: str, url: str | None = None) -> None:
        """Initialize exception.

        Args:
            message: Error message
            url: Remote URL the transport asked credentials for
        """
        super().__init__(message)
        self.url = url


class CredentialsFileMissingError(CredentialResolutionError):
    """The credentials file does not exist at the configured path.

    Attributes:
        path: The configured credentials file path
    """

    def __init__(self, path: str, url: str | None = None) -> None:
        super().__init__(f"Credentials file does not exist: {path}", url=url)
        self.path = path


class CredentialsFileInvalidError(CredentialResolutionError):
    """The credentials file exists but failed validation.

    The message lists every validation problem, one per line, so a single
    failure is enough to fix the whole file.

    Attributes:
        path: The credentials file path
        errors: Validation messages in file order
    """

    def __init__(self, path: str, errors: Sequence[str], url: str | None = None) -> None:
        lines = [f"Credentials file {path} is not valid:"]
        lines.extend(f"  - {error}" for error in errors)
        super().__init__("\n".join(lines), url=url)
        self.path = path
        self.errors = tuple(errors)


class NoCredentialsForUrlError(CredentialResolutionError):
    """No credentials entry matches the requested URL."""

    def __init__(self, url: str) -> None:
        super().__init__(f"No credentials found for: {url}", url=url)


class UnsupportedProtocolError(CredentialResolutionError):
    """The URL's protocol needs support the git transport does not have.

    Attributes:
        protocol: Protocol of the requested URL (e.g., "https")
        feature: Transport feature the protocol requires, if any
    """

    def __init__(
        self,
        url: str,
        protocol: str,
        feature: str | None = None,
        message: str | None = None,
    ) -> None:
        if message is None:
            message = f"{url} requires {feature or protocol} support, which the git transport does not provide"
        super().__init__(message, url=url)
        self.protocol = protocol
        self.feature = feature


class CredentialTypeNotAllowedError(CredentialResolutionError):
    """The matched entry's kind is not accepted by the transport this round.

    This is a transport-level rejection: the caller should retry with other
    allowed kinds or give up.

    Attributes:
        kind: Kind of the matched credentials entry
        allowed_kinds: Kinds the transport accepted for this round
    """

    def __init__(self, url: str, kind: str, allowed_kinds: Collection[str]) -> None:
        allowed = ", ".join(sorted(allowed_kinds)) or "none"
        super().__init__(
            f"Credentials for {url} are of type {kind}, but the transport only accepts: {allowed}",
            url=url,
        )
        self.kind = kind
        self.allowed_kinds = frozenset(allowed_kinds)


class GitOperationError(GitCredentialsError):
    """Git operation errors.

    Raised when a git URL cannot be understood or a git network operation
    run through the transport adapter fails.
    """

    pass
