"""Pytest configuration and shared fixtures."""

from collections.abc import Callable
from pathlib import Path

import pytest
import structlog

from git_credentials.credentials import GitCredentialsProvider, set_resolver

ALL_FEATURES = frozenset({"https", "ssh"})


@pytest.fixture(autouse=True)
def reset_global_state():
    """Restore the default secret resolver and logging configuration."""
    yield
    set_resolver(None)
    structlog.reset_defaults()


@pytest.fixture
def write_credentials(tmp_path: Path) -> Callable[[str], Path]:
    """Write YAML content to a credentials file and return its path."""

    def _write(content: str, name: str = "credentials.yml") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_provider() -> Callable[..., GitCredentialsProvider]:
    """Build a provider whose transport supports https and ssh."""

    def _make(path: Path, features=ALL_FEATURES, **kwargs) -> GitCredentialsProvider:
        return GitCredentialsProvider(path, features=lambda: features, **kwargs)

    return _make


@pytest.fixture
def ssh_credentials(write_credentials) -> Path:
    """Credentials file with one inline SSH key."""
    return write_credentials(
        """
- url: git@github.com:example/foo.git
  username: git
  private_key: barkey
"""
    )


@pytest.fixture
def plaintext_credentials(write_credentials) -> Path:
    """Credentials file with one http username/password entry."""
    return write_credentials(
        """
- url: http://foo.com/bar.git
  username: git
  password: barpw
"""
    )


@pytest.fixture
def mixed_credentials(write_credentials) -> Path:
    """Credentials file mixing exact and prefix entries of both kinds."""
    return write_credentials(
        """
- url: https://github.com/
  username: fallback
  password: fallback-pw

- url: https://github.com/example/
  username: example-bot
  password: example-pw

- url: https://github.com/example/special.git
  username: special-bot
  password: special-pw

- url: "git@gitlab.com:"
  private_key: gitlab-key

- url: ssh://deploy@gitea.local:2222/team/
  kind: ssh_key
  private_key: gitea-key
  passphrase: hunter2
"""
    )
