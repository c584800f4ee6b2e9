"""Git URL parsing utilities.

This module detects the network protocol of git remote URLs and of the URL
patterns stored in a credentials file, and holds the tables that tie each
protocol to the credential kind and transport feature it needs.

Supported URL formats:
    HTTP(S):
        - https://github.com/owner/repo.git
        - https://user@gitlab.com:8443/group/project
        - http://gitea.local/owner/

    SSH:
        - ssh://git@github.com/owner/repo.git
        - ssh://git@gitea.local:2222/owner/repo
        - git@github.com:owner/repo.git (scp-style)

    Git daemon (no authentication):
        - git://github.com/owner/repo.git

Patterns may stop anywhere after the host, so ``https://github.com/owner/``
and ``git@github.com:`` parse as well as full repository URLs.

Key Exports:
    GitUrlParser: Parse a URL into protocol, user, host, port and path.
    detect_protocol: Shortcut returning only the protocol.
    URL_PROTOCOLS: Credential kind each authenticating protocol requires.
    PROTOCOL_FEATURES: Transport feature each protocol requires.

Example:
    >>> from git_credentials.git.parser import GitUrlParser
    >>> parser = GitUrlParser("git@github.com:owner/repo.git")
    >>> parser.protocol
    <UrlProtocol.SSH: 'ssh'>
    >>> parser.username
    'git'
    >>> parser.scp_style
    True

Thread Safety:
    GitUrlParser instances are immutable after initialization and are
    safe for concurrent access from multiple threads.
"""

import re
from collections.abc import Mapping
from types import MappingProxyType

from git_credentials.enums import CredentialKind, UrlProtocol
from git_credentials.git.exceptions import InvalidGitUrlError

# Credential kind each protocol authenticates with. git:// has no entry
# because the git daemon protocol never asks for credentials.
URL_PROTOCOLS: Mapping[UrlProtocol, CredentialKind] = MappingProxyType(
    {
        UrlProtocol.HTTP: CredentialKind.PLAINTEXT,
        UrlProtocol.HTTPS: CredentialKind.PLAINTEXT,
        UrlProtocol.SSH: CredentialKind.SSH_KEY,
    }
)

# Optional transport features a protocol needs. Plain http is always built in.
PROTOCOL_FEATURES: Mapping[UrlProtocol, str] = MappingProxyType(
    {
        UrlProtocol.HTTPS: "https",
        UrlProtocol.SSH: "ssh",
    }
)


class GitUrlParser:
    """Parser for git remote URLs and URL prefixes.

    Supported formats:
        Scheme format:
            - <scheme>://[user@]host[:port][/path] with scheme one of
              http, https, ssh, git

        SCP format:
            - user@host:path (path may be empty)

    If parsing fails, the constructor raises InvalidGitUrlError.

    Attributes:
        url: Original URL that was parsed (whitespace trimmed).
        protocol: Detected UrlProtocol.
        username: User part of the URL, if present (password stripped).
        host: Hostname of the git server.
        port: Port number if given, else None.
        path: Path component ('' when the URL stops after the host).
        scp_style: True for user@host:path URLs.

    Example:
        >>> parser = GitUrlParser("https://ci@gitea.example.com:3000/myorg/")
        >>> parser.protocol
        <UrlProtocol.HTTPS: 'https'>
        >>> parser.port
        3000
        >>> parser.username
        'ci'
    """

    # Matches: https://host/path, ssh://git@host:2222/path, git://host/path
    SCHEME_PATTERN = re.compile(
        r"^(?P<scheme>https?|ssh|git)://"
        r"(?:(?P<user>[^@/\s]+)@)?"
        r"(?P<host>[a-zA-Z0-9._-]+)"
        r"(?::(?P<port>\d+))?"
        r"(?P<path>/\S*)?$",
        re.IGNORECASE,
    )

    # Matches: git@github.com:owner/repo.git or git@github.com:
    # Requires user@ to avoid matching scheme URLs with ports
    SCP_PATTERN = re.compile(r"^(?P<user>[^@/:\s]+)@(?P<host>[a-zA-Z0-9._-]+):(?P<path>(?!//)\S*)$")

    def __init__(self, url: str) -> None:
        """Initialize parser with a git URL.

        Args:
            url: Git URL or URL prefix to parse. Leading/trailing whitespace
                is trimmed automatically.

        Raises:
            InvalidGitUrlError: If the URL format is not recognized.
        """
        self.url = url.strip()
        self._protocol: UrlProtocol | None = None
        self._username: str | None = None
        self._host: str | None = None
        self._port: int | None = None
        self._path = ""
        self._scp_style = False

        self._parse()

    def _parse(self) -> None:
        """Parse the URL, trying scheme format first, then scp format.

        Raises:
            InvalidGitUrlError: If neither format matches.
        """
        if self._parse_scheme():
            return

        if self._parse_scp():
            self._scp_style = True
            return

        raise InvalidGitUrlError(
            self.url,
            reason="Must be http(s)://, ssh://, git:// or user@host:path",
        )

    def _parse_scheme(self) -> bool:
        match = self.SCHEME_PATTERN.match(self.url)
        if not match:
            return False

        self._protocol = UrlProtocol(match.group("scheme").lower())
        self._username = self._strip_password(match.group("user"))
        self._host = match.group("host")
        port = match.group("port")
        self._port = int(port) if port else None
        self._path = match.group("path") or ""
        return True

    def _parse_scp(self) -> bool:
        match = self.SCP_PATTERN.match(self.url)
        if not match:
            return False

        self._protocol = UrlProtocol.SSH
        self._username = match.group("user")
        self._host = match.group("host")
        self._path = match.group("path")
        return True

    @staticmethod
    def _strip_password(user: str | None) -> str | None:
        """Drop an inline ``:password`` from a URL user part."""
        if user is None:
            return None
        return user.split(":", 1)[0] or None

    @property
    def protocol(self) -> UrlProtocol:
        """Get the detected protocol.

        Raises:
            ValueError: If URL has not been successfully parsed.
        """
        if self._protocol is None:
            raise ValueError("URL not parsed")
        return self._protocol

    @property
    def username(self) -> str | None:
        """Get the user embedded in the URL, if any."""
        return self._username

    @property
    def host(self) -> str:
        """Get the hostname of the git server.

        Raises:
            ValueError: If URL has not been successfully parsed.
        """
        if self._host is None:
            raise ValueError("URL not parsed")
        return self._host

    @property
    def port(self) -> int | None:
        """Get the port number, if the URL names one."""
        return self._port

    @property
    def path(self) -> str:
        """Get the path after the host ('' for bare host prefixes)."""
        return self._path

    @property
    def scp_style(self) -> bool:
        """Whether the URL uses the scp-like ``user@host:path`` form."""
        return self._scp_style

    @property
    def required_kind(self) -> CredentialKind | None:
        """Credential kind this URL's protocol authenticates with.

        Returns:
            The kind from URL_PROTOCOLS, or None for protocols that never
            authenticate (git://).
        """
        return URL_PROTOCOLS.get(self.protocol)

    @property
    def required_feature(self) -> str | None:
        """Transport feature this URL's protocol needs, if any."""
        return PROTOCOL_FEATURES.get(self.protocol)


def detect_protocol(url: str) -> UrlProtocol:
    """Return the protocol of a git URL.

    Args:
        url: Git remote URL

    Returns:
        The detected UrlProtocol

    Raises:
        InvalidGitUrlError: If the URL format is not recognized.
    """
    return GitUrlParser(url).protocol
