"""Git URL parsing and the pygit2 transport adapter.

The transport adapter is imported lazily from
:mod:`git_credentials.git.transport` so that URL parsing works without
loading libgit2.

Example:
    >>> from git_credentials.git import GitUrlParser
    >>> GitUrlParser("ssh://git@gitea.local:2222/org/repo.git").port
    2222
"""

from git_credentials.git.exceptions import GitUrlError, InvalidGitUrlError
from git_credentials.git.parser import PROTOCOL_FEATURES, URL_PROTOCOLS, GitUrlParser, detect_protocol

__all__ = [
    # Parser
    "GitUrlParser",
    "detect_protocol",
    "URL_PROTOCOLS",
    "PROTOCOL_FEATURES",
    # Exceptions
    "GitUrlError",
    "InvalidGitUrlError",
]
