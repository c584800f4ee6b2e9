"""File-backed credential store.

The credentials file is a YAML list of entries (optionally nested under a
top-level ``credentials:`` key)::

    - url: https://github.com/example/
      username: ci-bot
      password: ${GITHUB_TOKEN}

    - url: git@gitlab.com:example/
      username: git
      private_key_file: ~/.ssh/deploy_key

Loading never raises for content problems. Every structural problem is
collected into :attr:`CredentialStore.errors` so that one failure can
report the complete list. Only a missing file is fatal.

Thread Safety:
    A store is immutable after loading and can be shared between threads.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

import structlog
import yaml
from pydantic import ValidationError

from git_credentials.enums import CredentialKind, UrlProtocol
from git_credentials.exceptions import CredentialsFileMissingError
from git_credentials.git.exceptions import InvalidGitUrlError
from git_credentials.git.parser import URL_PROTOCOLS, GitUrlParser

from .models import CredentialDefinition, CredentialEntry

log = structlog.get_logger(__name__)

# Characters after a prefix pattern that end a host or path segment
_BOUNDARY_CHARS = ("/", ":")


@dataclass(frozen=True)
class ValidCredentials:
    """Load outcome for a credentials file that passed validation."""

    store: CredentialStore


@dataclass(frozen=True)
class InvalidCredentials:
    """Load outcome for a credentials file with validation problems."""

    path: Path
    errors: tuple[str, ...]


LoadResult = Union[ValidCredentials, InvalidCredentials]


def load_credentials(path: str | Path) -> LoadResult:
    """Load and validate a credentials file.

    Args:
        path: Path of the credentials file

    Returns:
        ValidCredentials with the store, or InvalidCredentials with every
        validation message in file order

    Raises:
        CredentialsFileMissingError: If the file does not exist
    """
    path = Path(path)
    if not path.is_file():
        raise CredentialsFileMissingError(str(path))

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        return _invalid(path, [f"invalid YAML syntax: {e}"])
    except (OSError, UnicodeDecodeError) as e:
        return _invalid(path, [f"cannot read file: {e}"])

    if isinstance(raw, Mapping) and set(raw) == {"credentials"}:
        raw = raw["credentials"]
    if raw is None:
        raw = []
    if not isinstance(raw, list):
        return _invalid(path, ["credentials must be a YAML list of entries"])

    entries: list[CredentialEntry] = []
    errors: list[str] = []
    for index, item in enumerate(raw):
        entry, entry_errors = _parse_entry(index, item, base_dir=path.parent)
        errors.extend(entry_errors)
        if entry is not None:
            entries.append(entry)

    if errors:
        return _invalid(path, errors)

    log.debug("credentials_loaded", path=str(path), entries=len(entries))
    return ValidCredentials(store=CredentialStore(path, entries))


def _invalid(path: Path, errors: list[str]) -> InvalidCredentials:
    log.warning("credentials_file_invalid", path=str(path), error_count=len(errors))
    return InvalidCredentials(path=path, errors=tuple(errors))


def _parse_entry(index: int, item: Any, base_dir: Path) -> tuple[CredentialEntry | None, list[str]]:
    """Validate one raw entry.

    Returns:
        The entry (None when invalid) and its validation messages
    """
    if not isinstance(item, Mapping):
        return None, [f"entry {index + 1}: must be a mapping, got {type(item).__name__}"]

    url = item.get("url", item.get("url_pattern"))
    label = f"entry {index + 1} ({url})" if isinstance(url, str) else f"entry {index + 1}"

    try:
        definition = CredentialDefinition.model_validate(dict(item))
    except ValidationError as e:
        return None, [_format_error(label, error) for error in e.errors()]

    problems = definition.problems(base_dir=base_dir)
    if problems:
        return None, [f"{label}: {name}: {message}" if name else f"{label}: {message}" for name, message in problems]

    return definition.to_entry(index, base_dir=base_dir), []


def _format_error(label: str, error: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error["msg"]
    if error["type"] == "extra_forbidden":
        message = "unknown field"
    if error["type"] == "value_error":
        message = message.removeprefix("Value error, ")
    return f"{label}: {location}: {message}" if location else f"{label}: {message}"


class CredentialStore:
    """Ordered, read-only collection of credentials entries.

    Stores are created by :meth:`load`; they carry their validity instead of
    raising so the caller can surface every problem at once.

    Attributes:
        path: Credentials file the store was loaded from
        entries: Entries in load order (empty when invalid)
        errors: Validation messages (empty when valid)

    Example:
        >>> store = CredentialStore.load(".credentials.yml")
        >>> if store.valid:
        ...     entry = store.find_by_url("https://github.com/example/repo.git")
    """

    def __init__(
        self,
        path: str | Path,
        entries: Iterable[CredentialEntry] = (),
        errors: tuple[str, ...] = (),
    ) -> None:
        self._path = Path(path)
        self._entries = tuple(entries)
        self._errors = tuple(errors)

    @classmethod
    def load(cls, path: str | Path) -> CredentialStore:
        """Load a store from a credentials file.

        Args:
            path: Path of the credentials file

        Returns:
            The store; check :attr:`valid` before use

        Raises:
            CredentialsFileMissingError: If the file does not exist
        """
        result = load_credentials(path)
        if isinstance(result, InvalidCredentials):
            return cls(result.path, errors=result.errors)
        return result.store

    @property
    def path(self) -> Path:
        return self._path

    @property
    def entries(self) -> tuple[CredentialEntry, ...]:
        return self._entries

    @property
    def errors(self) -> tuple[str, ...]:
        return self._errors

    @property
    def valid(self) -> bool:
        """Whether the file passed validation."""
        return not self._errors

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CredentialEntry]:
        return iter(self._entries)

    def find_by_url(self, url: str) -> CredentialEntry | None:
        """Find the entry that best matches a remote URL.

        Matching rule:
            1. An entry whose pattern equals the URL wins.
            2. Otherwise the longest pattern for the same protocol, host,
               port (and username, when the pattern names one) whose path
               is a segment-aligned prefix of the URL's path wins.
            3. Among identical patterns the first entry in load order wins.

        Args:
            url: Remote URL requested by the transport

        Returns:
            The matching entry, or None
        """
        url = url.strip()
        best: CredentialEntry | None = None
        for entry in self._entries:
            if entry.url_pattern == url:
                return entry
            if _is_prefix_match(entry.url_pattern, url) and (
                best is None or len(entry.url_pattern) > len(best.url_pattern)
            ):
                best = entry
        return best

    @property
    def url_protocols(self) -> dict[UrlProtocol, CredentialKind]:
        """Credential kind required by each protocol used in this store.

        Returns:
            Mapping restricted to the protocols of the stored URL patterns,
            in first-use order
        """
        protocols: dict[UrlProtocol, CredentialKind] = {}
        for entry in self._entries:
            protocol = GitUrlParser(entry.url_pattern).protocol
            protocols.setdefault(protocol, URL_PROTOCOLS[protocol])
        return protocols


def _is_prefix_match(pattern: str, url: str) -> bool:
    """Check whether a pattern covers a URL.

    Protocol, host and port must be equal, and so must the username when
    the pattern names one. The pattern's path must then be a prefix of the
    URL's path ending on a segment boundary. URLs that do not parse match
    nothing.
    """
    try:
        wanted = GitUrlParser(pattern)
        actual = GitUrlParser(url)
    except InvalidGitUrlError:
        return False

    if (wanted.protocol, wanted.host.lower(), wanted.port) != (actual.protocol, actual.host.lower(), actual.port):
        return False
    if wanted.username is not None and wanted.username != actual.username:
        return False

    prefix, path = wanted.path, actual.path
    if not prefix or prefix == path:
        return True
    if not path.startswith(prefix):
        return False
    if prefix.endswith(_BOUNDARY_CHARS):
        return True
    remainder = path[len(prefix) :]
    return remainder.startswith(_BOUNDARY_CHARS) or remainder in (".git", ".git/")
