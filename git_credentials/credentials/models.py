"""Credential data models.

This module defines three groups of types:

- :class:`CredentialDefinition` -- pydantic model for one raw entry of the
  credentials file, with field-level validation.
- :class:`CredentialEntry` -- the immutable, validated entry kept by the
  credential store.
- :class:`PlaintextCredential` / :class:`SshKeyCredential` -- the typed
  credentials handed to a git transport, plus the per-round
  :class:`AuthenticationRequest`.

Example:
    >>> definition = CredentialDefinition.model_validate(
    ...     {"url": "https://github.com/example/", "username": "ci", "password": "s3cret"}
    ... )
    >>> entry = definition.to_entry(index=0)
    >>> entry.kind
    <CredentialKind.PLAINTEXT: 'plaintext'>
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Collection, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from git_credentials.enums import CredentialKind
from git_credentials.git.exceptions import InvalidGitUrlError
from git_credentials.git.parser import URL_PROTOCOLS, GitUrlParser

from .fields import CredentialSecret


class CredentialDefinition(BaseModel):
    """One entry of the credentials file as written by the user.

    Field types and URL syntax are checked by pydantic; rules that span
    several fields are reported by :meth:`problems` so that each one
    becomes its own validation message.

    Secret fields accept ``${VAR}`` and ``@keyring:service/key`` references.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    url: str = Field(
        ...,
        validation_alias=AliasChoices("url", "url_pattern"),
        description="Remote URL or protocol-qualified URL prefix",
    )
    kind: CredentialKind | None = Field(default=None, description="plaintext or ssh_key; inferred when omitted")
    username: str | None = Field(default=None, description="Username for the remote")
    password: CredentialSecret | None = Field(default=None, description="Password or token (plaintext)")
    private_key: CredentialSecret | None = Field(default=None, description="Inline private key (ssh_key)")
    private_key_file: Path | None = Field(default=None, description="Path to a private key file (ssh_key)")
    public_key: str | None = Field(default=None, description="Optional public key matching the private key")
    passphrase: CredentialSecret | None = Field(default=None, description="Private key passphrase")

    @field_validator("url")
    @classmethod
    def validate_url_pattern(cls, v: str) -> str:
        """Ensure the pattern is a protocol-qualified URL that can authenticate.

        Raises:
            ValueError: If the pattern is empty, malformed, or uses git://
        """
        v = v.strip()
        if not v:
            raise ValueError("URL pattern must not be empty")
        try:
            parser = GitUrlParser(v)
        except InvalidGitUrlError as e:
            raise ValueError(e.message) from e
        if parser.required_kind is None:
            raise ValueError(f"{parser.protocol}:// URLs do not support authentication")
        return v

    @property
    def inferred_kind(self) -> CredentialKind | None:
        """Explicit kind, or the kind implied by the secret fields present."""
        if self.kind is not None:
            return self.kind
        has_key = self.private_key is not None or self.private_key_file is not None
        if self.password is not None and not has_key:
            return CredentialKind.PLAINTEXT
        if has_key and self.password is None:
            return CredentialKind.SSH_KEY
        return None

    def problems(self, base_dir: Path | None = None) -> list[tuple[str | None, str]]:
        """Check the rules that span several fields.

        Args:
            base_dir: Directory relative ``private_key_file`` paths resolve
                against (the credentials file's directory)

        Returns:
            ``(field, message)`` pairs, empty when the entry is consistent.
        """
        kind = self.inferred_kind
        if kind is None:
            if self.password is not None:
                return [("kind", "both password and private key given; set kind explicitly")]
            return [(None, "missing secret: set password, private_key or private_key_file")]

        found: list[tuple[str | None, str]] = []
        required = URL_PROTOCOLS[GitUrlParser(self.url).protocol]
        if required is not kind:
            found.append(("kind", f"{kind} credentials cannot be used with {self.url}, which requires {required}"))

        if kind is CredentialKind.PLAINTEXT:
            if not self.username:
                found.append(("username", "Field required for plaintext credentials"))
            if self.password is None or not self.password.get_secret_value():
                found.append(("password", "Field required for plaintext credentials"))
            for name in ("private_key", "private_key_file", "public_key", "passphrase"):
                if getattr(self, name) is not None:
                    found.append((name, "not allowed for plaintext credentials"))
        elif kind is CredentialKind.SSH_KEY:
            if self.password is not None:
                found.append(("password", "not allowed for ssh_key credentials"))
            if self.private_key is not None and self.private_key_file is not None:
                found.append(("private_key_file", "give either private_key or private_key_file, not both"))
            elif self.private_key is not None and not self.private_key.get_secret_value():
                found.append(("private_key", "private key must not be empty"))
            elif self.private_key is None and self.private_key_file is None:
                found.append(("private_key", "Field required for ssh_key credentials"))
            elif self.private_key_file is not None:
                problem = _check_key_file(self._key_path(base_dir))
                if problem:
                    found.append(("private_key_file", problem))
        else:
            raise ValueError(f"Unhandled credential kind: {kind!r}")
        return found

    def to_entry(self, index: int, base_dir: Path | None = None) -> CredentialEntry:
        """Build the immutable store entry.

        Call only when :meth:`problems` returned nothing.

        Args:
            index: Position of the entry in load order
            base_dir: Directory relative key file paths resolve against
        """
        kind = self.inferred_kind
        if kind is CredentialKind.PLAINTEXT:
            assert self.password is not None
            secret = self.password.get_secret_value()
        elif kind is CredentialKind.SSH_KEY:
            if self.private_key is not None:
                secret = self.private_key.get_secret_value()
            else:
                secret = self._key_path(base_dir).read_text(encoding="utf-8")
        else:
            raise ValueError(f"Unhandled credential kind: {kind!r}")

        return CredentialEntry(
            url_pattern=self.url,
            kind=kind,
            secret=secret,
            username=self.username,
            public_key=self.public_key,
            passphrase=self.passphrase.get_secret_value() if self.passphrase else None,
            index=index,
            key_file=self._key_path(base_dir) if self.private_key_file is not None else None,
        )

    def _key_path(self, base_dir: Path | None) -> Path:
        assert self.private_key_file is not None
        path = self.private_key_file.expanduser()
        if base_dir is not None and not path.is_absolute():
            path = base_dir / path
        return path


def _check_key_file(path: Path) -> str | None:
    """Return a problem description if the key file cannot provide key material."""
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return f"key file does not exist: {path}"
    except (OSError, UnicodeDecodeError) as e:
        return f"key file cannot be read: {path} ({e})"
    if not content.strip():
        return f"key file is empty: {path}"
    return None


@dataclass(frozen=True)
class CredentialEntry:
    """A validated credentials entry.

    Entries are immutable; a store is rebuilt wholesale when its file is
    loaded again.

    Attributes:
        url_pattern: Exact URL or protocol-qualified prefix to match
        kind: Authentication mechanism of the entry
        secret: Password (plaintext) or private key material (ssh_key)
        username: Optional stored username
        public_key: Optional public key (ssh_key only)
        passphrase: Optional private key passphrase (ssh_key only)
        index: Position in load order
        key_file: Key file the secret was read from, if any
    """

    url_pattern: str
    kind: CredentialKind
    secret: str = field(repr=False)
    username: str | None = None
    public_key: str | None = field(default=None, repr=False)
    passphrase: str | None = field(default=None, repr=False)
    index: int = 0
    key_file: Path | None = None


@dataclass(frozen=True)
class PlaintextCredential:
    """Username/password credential for http(s) remotes."""

    kind: ClassVar[CredentialKind] = CredentialKind.PLAINTEXT

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class SshKeyCredential:
    """SSH private key credential for ssh and scp-style remotes.

    The key material lives in memory. Transports that can only read keys
    from disk use :meth:`materialize` to get a short-lived key file.
    """

    kind: ClassVar[CredentialKind] = CredentialKind.SSH_KEY

    username: str
    private_key: str = field(repr=False)
    public_key: str | None = field(default=None, repr=False)
    passphrase: str | None = field(default=None, repr=False)

    @contextmanager
    def materialize(self, directory: Path | str | None = None) -> Iterator[Path]:
        """Write the private key to a transient file readable only by the owner.

        The file is removed when the block exits, whether it exits normally
        or with an exception.

        Args:
            directory: Where to create the file (system temp dir by default)

        Yields:
            Path of the key file
        """
        fd, name = tempfile.mkstemp(prefix="git-credentials-", suffix=".key", dir=directory)
        path = Path(name)
        try:
            # mkstemp creates the file with 0o600 already
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(self.private_key)
            yield path
        finally:
            path.unlink(missing_ok=True)


TypedCredential = Union[PlaintextCredential, SshKeyCredential]


@dataclass(frozen=True)
class AuthenticationRequest:
    """One authentication round as asked by the transport.

    Attributes:
        url: Requested remote URL
        username_hint: Username suggested by the transport (e.g., 'git' for SSH)
        allowed_kinds: Kinds the transport accepts this round
    """

    url: str
    username_hint: str | None
    allowed_kinds: frozenset[CredentialKind]

    @classmethod
    def create(
        cls,
        url: str,
        username_hint: str | None,
        allowed_kinds: Collection[CredentialKind | str],
    ) -> AuthenticationRequest:
        """Build a request, accepting kind names as plain strings.

        Names outside CredentialKind are dropped, so a round offering only
        unknown kinds is refused like one offering none.
        """
        known: set[CredentialKind] = set()
        for kind in allowed_kinds:
            try:
                known.add(CredentialKind(kind))
            except ValueError:
                continue
        return cls(url=url, username_hint=username_hint or None, allowed_kinds=frozenset(known))
