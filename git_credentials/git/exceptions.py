"""Git URL exceptions.

Example:
    >>> from git_credentials.git.exceptions import InvalidGitUrlError
    >>> raise InvalidGitUrlError("not-a-url")
    Traceback (most recent call last):
        ...
    InvalidGitUrlError: Invalid Git URL format: not-a-url

    Hint: Expected formats: ...
"""

from git_credentials.exceptions import GitOperationError


class GitUrlError(GitOperationError):
    """Base exception for git URL errors.

    Attributes:
        message: Error message
        hint: Optional hint for resolution
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        """Initialize exception.

        Args:
            message: Error message
            hint: Optional hint for resolution
        """
        super().__init__(message)
        self.message = message
        self.hint = hint

    def __str__(self) -> str:
        """Format error message with hint.

        Returns:
            Formatted error message with optional hint
        """
        if self.hint:
            return f"{self.message}\n\nHint: {self.hint}"
        return self.message


class InvalidGitUrlError(GitUrlError):
    """Raised when a git URL or URL pattern is not recognized.

    Attributes:
        url: The invalid URL
    """

    def __init__(self, url: str, reason: str | None = None) -> None:
        """Initialize exception.

        Args:
            url: The invalid URL
            reason: Optional reason for the error
        """
        msg = f"Invalid Git URL format: {url}"
        if reason:
            msg += f" ({reason})"

        super().__init__(
            message=msg,
            hint=(
                "Expected formats:\n"
                "  - https://github.com/owner/repo.git\n"
                "  - ssh://git@github.com/owner/repo.git\n"
                "  - git@github.com:owner/repo.git"
            ),
        )
        self.url = url
