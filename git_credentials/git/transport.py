"""pygit2 transport adapter.

Connects :class:`~git_credentials.credentials.provider.GitCredentialsProvider`
to libgit2's authentication callback through :class:`pygit2.RemoteCallbacks`
and exposes the transport's feature set as the feature query the provider
checks before handing out credentials.

libgit2 drives the negotiation: on every authentication challenge it calls
``credentials(url, username_from_url, allowed_types)`` again, possibly with
different allowed types. Each call resolves afresh.

SSH keys are handed over in memory when the round allows it. Otherwise the
key is written to a transient file that stays on disk until the callbacks
are closed, because libgit2 reads it after the callback returns.

Example:
    >>> provider = GitCredentialsProvider(".credentials.yml")
    >>> refs = ls_remote("git@github.com:example/repo.git", provider)
"""

from __future__ import annotations

import tempfile
from collections.abc import Callable
from contextlib import ExitStack
from pathlib import Path
from typing import Any

import pygit2
import structlog
from pygit2.enums import CredentialType, Feature

from git_credentials.credentials.models import PlaintextCredential, SshKeyCredential, TypedCredential
from git_credentials.credentials.provider import GitCredentialsProvider
from git_credentials.enums import CredentialKind
from git_credentials.exceptions import GitOperationError

log = structlog.get_logger(__name__)

# libgit2 credential type bits that each credential kind can satisfy. An ssh
# URL without a user first asks for USERNAME only; the ssh_key entry names it.
_KIND_TYPES = {
    CredentialKind.PLAINTEXT: CredentialType.USERPASS_PLAINTEXT,
    CredentialKind.SSH_KEY: CredentialType.SSH_KEY | CredentialType.SSH_MEMORY | CredentialType.USERNAME,
}


def supported_features() -> frozenset[str]:
    """Return the lower-case names of the features pygit2 was built with.

    Returns:
        Names such as ``{"threads", "https", "ssh"}``
    """
    enabled = pygit2.features
    return frozenset(feature.name.lower() for feature in Feature if feature.name and feature & enabled)


def kinds_from_credential_type(allowed_types: int) -> frozenset[CredentialKind]:
    """Translate libgit2 allowed credential type bits into credential kinds.

    Args:
        allowed_types: ``CredentialType`` flags passed to the callback

    Returns:
        Kinds the round accepts (possibly empty)
    """
    return frozenset(kind for kind, bits in _KIND_TYPES.items() if allowed_types & bits)


class CredentialCallbacks(pygit2.RemoteCallbacks):
    """RemoteCallbacks answering authentication rounds from a provider.

    Use as a context manager around the network operation so transient key
    files are removed however the operation ends.

    Args:
        provider: Provider resolving each round
        key_directory: Where transient key files are created

    Example::

        with CredentialCallbacks(provider) as callbacks:
            remote.fetch(callbacks=callbacks)
    """

    def __init__(self, provider: GitCredentialsProvider, key_directory: Path | str | None = None) -> None:
        super().__init__()
        self.provider = provider
        self.key_directory = key_directory
        self._key_files = ExitStack()

    def __enter__(self) -> CredentialCallbacks:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Remove every key file created for this operation."""
        self._key_files.close()

    def credentials(  # type: ignore[override]
        self,
        url: str,
        username_from_url: str | None,
        allowed_types: CredentialType,
    ) -> pygit2.UserPass | pygit2.Keypair | pygit2.KeypairFromMemory | pygit2.Username:
        """Provide credentials for one authentication round."""
        kinds = kinds_from_credential_type(allowed_types)
        log.debug("transport_auth_round", url=url, allowed_types=int(allowed_types))
        credential = self.provider.resolve(url, username_from_url, kinds)
        return self._to_pygit2(credential, allowed_types)

    def _to_pygit2(
        self,
        credential: TypedCredential,
        allowed_types: int,
    ) -> pygit2.UserPass | pygit2.Keypair | pygit2.KeypairFromMemory | pygit2.Username:
        if isinstance(credential, PlaintextCredential):
            return pygit2.UserPass(credential.username, credential.password)
        if isinstance(credential, SshKeyCredential):
            if allowed_types & CredentialType.SSH_MEMORY:
                return pygit2.KeypairFromMemory(
                    credential.username,
                    credential.public_key,
                    credential.private_key,
                    credential.passphrase or "",
                )
            if allowed_types & CredentialType.SSH_KEY:
                key_path = self._key_files.enter_context(credential.materialize(self.key_directory))
                return pygit2.Keypair(credential.username, None, str(key_path), credential.passphrase or "")
            return pygit2.Username(credential.username)
        raise TypeError(f"Unsupported credential type: {type(credential).__name__}")


def ls_remote(
    url: str,
    provider: GitCredentialsProvider,
    key_directory: Path | str | None = None,
) -> list[tuple[str, str]]:
    """List the references of a remote repository.

    Args:
        url: Remote URL
        provider: Credentials provider for authentication
        key_directory: Where transient key files are created

    Returns:
        ``(ref_name, oid)`` pairs as advertised by the remote

    Raises:
        CredentialResolutionError: If credentials cannot be resolved
        GitOperationError: If the transport fails
    """
    with tempfile.TemporaryDirectory(prefix="git-credentials-") as scratch:
        repo = pygit2.init_repository(scratch, bare=True)
        remote = repo.remotes.create_anonymous(url)
        with CredentialCallbacks(provider, key_directory) as callbacks:
            heads = _run("ls-remote", url, lambda: remote.ls_remotes(callbacks=callbacks))
    return [(head["name"], str(head["oid"])) for head in heads]


def fetch(
    repo_path: Path | str,
    provider: GitCredentialsProvider,
    remote_name: str = "origin",
    key_directory: Path | str | None = None,
) -> pygit2.remotes.TransferProgress:
    """Fetch a remote of a local repository.

    Raises:
        CredentialResolutionError: If credentials cannot be resolved
        GitOperationError: If the repository, remote, or transport fails
    """
    try:
        repo = pygit2.Repository(str(repo_path))
        remote = repo.remotes[remote_name]
    except (pygit2.GitError, KeyError) as e:
        raise GitOperationError(f"Cannot open remote '{remote_name}' of {repo_path}: {e}") from e

    with CredentialCallbacks(provider, key_directory) as callbacks:
        return _run("fetch", remote.url, lambda: remote.fetch(callbacks=callbacks))


def clone(
    url: str,
    path: Path | str,
    provider: GitCredentialsProvider,
    bare: bool = False,
    key_directory: Path | str | None = None,
) -> pygit2.Repository:
    """Clone a remote repository.

    Raises:
        CredentialResolutionError: If credentials cannot be resolved
        GitOperationError: If the transport fails
    """
    with CredentialCallbacks(provider, key_directory) as callbacks:
        return _run(
            "clone",
            url,
            lambda: pygit2.clone_repository(url, str(path), bare=bare, callbacks=callbacks),
        )


def _run(operation: str, url: str | None, action: Callable[[], Any]) -> Any:
    """Run a pygit2 network action, translating transport failures."""
    log.debug("git_operation_started", operation=operation, url=url)
    try:
        result = action()
    except pygit2.GitError as e:
        log.error("git_operation_failed", operation=operation, url=url, error=str(e))
        raise GitOperationError(f"git {operation} {url} failed: {e}") from e
    log.debug("git_operation_finished", operation=operation, url=url)
    return result


__all__ = [
    "CredentialCallbacks",
    "clone",
    "fetch",
    "kinds_from_credential_type",
    "ls_remote",
    "supported_features",
]