"""Authentication callback resolving git credentials from a credentials file.

A git transport calls the provider once per authentication round with the
remote URL, an optional username hint and the credential kinds it will
accept for that round. The provider answers with one typed credential or
raises a :class:`~git_credentials.exceptions.CredentialResolutionError`
subclass describing why it cannot.

The provider keeps no memory of earlier rounds. Calling it twice with the
same arguments against an unchanged file gives equal results, or the same
error. Retry and backoff belong to the transport.

Example:
    >>> provider = GitCredentialsProvider(".credentials.yml")
    >>> credential = provider.resolve(
    ...     "git@github.com:example/repo.git", "git", {CredentialKind.SSH_KEY}
    ... )
    >>> with credential.materialize() as key_path:
    ...     ...
"""

from __future__ import annotations

import os
from collections.abc import Callable, Collection, Mapping
from dataclasses import dataclass
from pathlib import Path

import structlog

from git_credentials.enums import CredentialKind, UrlProtocol
from git_credentials.exceptions import (
    CredentialsFileInvalidError,
    CredentialsFileMissingError,
    CredentialTypeNotAllowedError,
    NoCredentialsForUrlError,
    UnsupportedProtocolError,
)
from git_credentials.git.parser import PROTOCOL_FEATURES, GitUrlParser

from .models import (
    AuthenticationRequest,
    CredentialEntry,
    PlaintextCredential,
    SshKeyCredential,
    TypedCredential,
)
from .store import InvalidCredentials, LoadResult, ValidCredentials, load_credentials

log = structlog.get_logger(__name__)

FeatureQuery = Callable[[], Collection[str]]

# Username used for SSH when neither the transport, the entry nor the URL names one
DEFAULT_SSH_USERNAME = "git"

FileStamp = tuple[int, int]


@dataclass(frozen=True)
class _CachedLoad:
    file_stamp: FileStamp
    result: ValidCredentials
    key_stamps: tuple[tuple[Path, FileStamp | None], ...]

    def is_current(self, file_stamp: FileStamp) -> bool:
        return file_stamp == self.file_stamp and all(_stamp(path) == stamp for path, stamp in self.key_stamps)


def _stamp(path: Path) -> FileStamp | None:
    try:
        stat = os.stat(path)
    except OSError:
        return None
    return (stat.st_mtime_ns, stat.st_size)


def _default_features() -> Collection[str]:
    from git_credentials.git.transport import supported_features

    return supported_features()


class GitCredentialsProvider:
    """Resolve credentials for git transports from a credentials file.

    Args:
        credentials_file: Path of the YAML credentials file
        features: Callable returning the transport's supported feature
            names (e.g. ``{"https", "ssh"}``); defaults to the pygit2 build
        cache: Re-use the parsed file while its size and modification time,
            and those of the key files it references, are unchanged. A
            rewrite that keeps the size within one timestamp tick goes
            unnoticed; pass False to read the file on every round.

    Example::

        provider = GitCredentialsProvider("~/.git-credentials.yml")
        callbacks = CredentialCallbacks(provider)
        pygit2.clone_repository(url, path, callbacks=callbacks)
    """

    def __init__(
        self,
        credentials_file: str | Path,
        features: FeatureQuery | None = None,
        cache: bool = True,
    ) -> None:
        self.credentials_file = Path(credentials_file).expanduser()
        self._features = features or _default_features
        self._cache_enabled = cache
        self._cached: _CachedLoad | None = None

    @property
    def callback(self) -> Callable[[str, str | None, Collection[CredentialKind | str]], TypedCredential]:
        """The ``(url, username_hint, allowed_kinds)`` callable for transports."""
        return self.resolve

    def __call__(
        self,
        url: str,
        username_hint: str | None,
        allowed_kinds: Collection[CredentialKind | str],
    ) -> TypedCredential:
        return self.resolve(url, username_hint, allowed_kinds)

    def resolve(
        self,
        url: str,
        username_hint: str | None,
        allowed_kinds: Collection[CredentialKind | str],
    ) -> TypedCredential:
        """Resolve one authentication round.

        Args:
            url: Remote URL the transport is authenticating against
            username_hint: Username suggested by the transport, if any
            allowed_kinds: Credential kinds the transport accepts this round

        Returns:
            PlaintextCredential or SshKeyCredential

        Raises:
            CredentialsFileMissingError: The credentials file does not exist
            CredentialsFileInvalidError: The file failed validation
            NoCredentialsForUrlError: No entry matches the URL
            UnsupportedProtocolError: The transport lacks the URL's protocol support
            CredentialTypeNotAllowedError: The entry's kind is not allowed this round
        """
        request = AuthenticationRequest.create(url, username_hint, allowed_kinds)
        log.debug(
            "credentials_requested",
            url=request.url,
            username_hint=request.username_hint,
            allowed_kinds=sorted(kind.value for kind in request.allowed_kinds),
        )

        result = self._load(request.url)
        if isinstance(result, InvalidCredentials):
            raise CredentialsFileInvalidError(str(result.path), result.errors, url=request.url)
        store = result.store

        entry = store.find_by_url(request.url)
        if entry is None:
            log.info("credentials_not_found", url=request.url, path=str(store.path))
            raise NoCredentialsForUrlError(request.url)

        self._check_protocol(request.url, entry, store.url_protocols)

        if entry.kind not in request.allowed_kinds:
            log.info(
                "credential_type_not_allowed",
                url=request.url,
                kind=entry.kind.value,
                allowed_kinds=sorted(kind.value for kind in request.allowed_kinds),
            )
            raise CredentialTypeNotAllowedError(
                request.url,
                entry.kind.value,
                [kind.value for kind in request.allowed_kinds],
            )

        credential = self._build(request, entry)
        log.info(
            "credentials_resolved",
            url=request.url,
            url_pattern=entry.url_pattern,
            kind=entry.kind.value,
            username=credential.username,
        )
        return credential

    def load(self) -> LoadResult:
        """Load the credentials file, honouring the cache.

        Raises:
            CredentialsFileMissingError: If the file does not exist
        """
        return self._load(None)

    def _load(self, url: str | None) -> LoadResult:
        try:
            stat = os.stat(self.credentials_file)
        except FileNotFoundError as e:
            log.error("credentials_file_missing", path=str(self.credentials_file))
            raise CredentialsFileMissingError(str(self.credentials_file), url=url) from e

        file_stamp = (stat.st_mtime_ns, stat.st_size)
        cached = self._cached
        if self._cache_enabled and cached is not None and cached.is_current(file_stamp):
            return cached.result

        try:
            result = load_credentials(self.credentials_file)
        except CredentialsFileMissingError as e:
            e.url = url
            raise
        # Invalid files are re-read on every round
        if self._cache_enabled and isinstance(result, ValidCredentials):
            key_files = {entry.key_file for entry in result.store if entry.key_file is not None}
            self._cached = _CachedLoad(
                file_stamp=file_stamp,
                result=result,
                key_stamps=tuple((path, _stamp(path)) for path in sorted(key_files)),
            )
        else:
            self._cached = None
        return result

    def _check_protocol(
        self,
        url: str,
        entry: CredentialEntry,
        url_protocols: Mapping[UrlProtocol, CredentialKind],
    ) -> None:
        """Verify the transport can authenticate over the URL's protocol.

        Raises:
            UnsupportedProtocolError: If the feature is missing or the entry's
                kind does not fit the protocol
        """
        protocol = GitUrlParser(url).protocol
        required_kind = url_protocols.get(protocol)
        if required_kind is not entry.kind:
            raise UnsupportedProtocolError(
                url,
                protocol=protocol.value,
                message=f"{url} requires {required_kind or 'no'} credentials, "
                f"but the entry for {entry.url_pattern} holds {entry.kind.value}",
            )

        feature = PROTOCOL_FEATURES.get(protocol)
        if feature is not None:
            available = {name.lower() for name in self._features()}
            if feature not in available:
                log.error("transport_feature_missing", url=url, feature=feature, available=sorted(available))
                raise UnsupportedProtocolError(url, protocol=protocol.value, feature=feature)

    @staticmethod
    def _build(request: AuthenticationRequest, entry: CredentialEntry) -> TypedCredential:
        """Construct the typed credential for a matched entry."""
        if entry.kind is CredentialKind.SSH_KEY:
            username = (
                request.username_hint
                or entry.username
                or GitUrlParser(request.url).username
                or DEFAULT_SSH_USERNAME
            )
            return SshKeyCredential(
                username=username,
                private_key=entry.secret,
                public_key=entry.public_key,
                passphrase=entry.passphrase,
            )
        if entry.kind is CredentialKind.PLAINTEXT:
            username = entry.username or request.username_hint
            assert username is not None
            return PlaintextCredential(username=username, password=entry.secret)
        raise ValueError(f"Unhandled credential kind: {entry.kind!r}")
