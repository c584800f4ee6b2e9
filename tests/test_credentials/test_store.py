"""Tests for the file-backed credential store."""

import dataclasses

import pytest

from git_credentials.credentials import (
    CredentialStore,
    InvalidCredentials,
    ValidCredentials,
    load_credentials,
)
from git_credentials.credentials.models import CredentialEntry
from git_credentials.credentials.store import _is_prefix_match
from git_credentials.enums import CredentialKind, UrlProtocol
from git_credentials.exceptions import CredentialsFileMissingError


def _entry(url_pattern: str, index: int = 0, kind: CredentialKind = CredentialKind.PLAINTEXT) -> CredentialEntry:
    return CredentialEntry(url_pattern=url_pattern, kind=kind, secret=f"secret-{index}", username="u", index=index)


class TestLoadCredentials:
    """Test loading and validating credentials files."""

    def test_missing_file_raises(self, tmp_path):
        """Test a missing file is the only fatal load error."""
        with pytest.raises(CredentialsFileMissingError):
            load_credentials(tmp_path / "nope.yml")

    def test_directory_is_missing_file(self, tmp_path):
        """Test a directory path is not a credentials file."""
        with pytest.raises(CredentialsFileMissingError):
            load_credentials(tmp_path)

    def test_valid_file(self, mixed_credentials):
        """Test entries are loaded in file order with inferred kinds."""
        result = load_credentials(mixed_credentials)

        assert isinstance(result, ValidCredentials)
        entries = result.store.entries
        assert [entry.index for entry in entries] == [0, 1, 2, 3, 4]
        assert entries[0].kind is CredentialKind.PLAINTEXT
        assert entries[3].kind is CredentialKind.SSH_KEY
        assert entries[3].secret == "gitlab-key"
        assert entries[4].passphrase == "hunter2"

    def test_empty_file_is_valid(self, write_credentials):
        """Test an empty file is a valid store without entries."""
        store = CredentialStore.load(write_credentials(""))

        assert store.valid
        assert len(store) == 0

    def test_nested_under_credentials_key(self, write_credentials):
        """Test entries may be nested under a top-level credentials key."""
        path = write_credentials(
            """
credentials:
  - url_pattern: https://github.com/example/
    username: ci
    password: pw
"""
        )

        store = CredentialStore.load(path)

        assert store.valid
        assert store.entries[0].url_pattern == "https://github.com/example/"

    def test_explicit_kind(self, write_credentials):
        """Test kind may be given explicitly."""
        path = write_credentials("- url: 'git@github.com:'\n  kind: ssh_key\n  private_key: k\n")

        assert CredentialStore.load(path).entries[0].kind is CredentialKind.SSH_KEY

    def test_url_is_stripped(self, write_credentials):
        """Test surrounding whitespace in patterns is ignored."""
        path = write_credentials("- url: '  https://github.com/  '\n  username: ci\n  password: pw\n")

        assert CredentialStore.load(path).entries[0].url_pattern == "https://github.com/"

    def test_private_key_file_relative_to_credentials_file(self, write_credentials, tmp_path):
        """Test relative key files resolve against the credentials file."""
        (tmp_path / "keys").mkdir()
        (tmp_path / "keys" / "deploy").write_text("file-key\n", encoding="utf-8")
        path = write_credentials("- url: 'git@github.com:'\n  private_key_file: keys/deploy\n")

        store = CredentialStore.load(path)

        assert store.valid
        assert store.entries[0].secret == "file-key\n"

    def test_secret_from_environment(self, write_credentials, monkeypatch):
        """Test ${VAR} references are resolved while loading."""
        monkeypatch.setenv("TEST_GIT_TOKEN", "from-env")
        path = write_credentials("- url: https://github.com/\n  username: ci\n  password: ${TEST_GIT_TOKEN}\n")

        assert CredentialStore.load(path).entries[0].secret == "from-env"

    def test_entries_are_immutable(self, plaintext_credentials):
        """Test loaded entries cannot be modified."""
        entry = CredentialStore.load(plaintext_credentials).entries[0]

        with pytest.raises(dataclasses.FrozenInstanceError):
            entry.secret = "changed"

    def test_secret_not_in_repr(self, plaintext_credentials):
        """Test secrets stay out of entry reprs."""
        entry = CredentialStore.load(plaintext_credentials).entries[0]

        assert "barpw" not in repr(entry)


class TestValidationErrors:
    """Test problems are collected rather than raised."""

    def _errors(self, write_credentials, content: str) -> tuple[str, ...]:
        result = load_credentials(write_credentials(content))
        assert isinstance(result, InvalidCredentials)
        assert result.errors
        return result.errors

    def test_invalid_yaml(self, write_credentials):
        """Test broken YAML syntax is a validation problem."""
        errors = self._errors(write_credentials, "- url: [unclosed\n")

        assert errors[0].startswith("invalid YAML syntax")

    def test_top_level_not_a_list(self, write_credentials):
        """Test the top level must be a list."""
        errors = self._errors(write_credentials, "url: https://github.com/\n")

        assert errors == ("credentials must be a YAML list of entries",)

    def test_entry_not_a_mapping(self, write_credentials):
        """Test every entry must be a mapping."""
        errors = self._errors(write_credentials, "- just-a-string\n")

        assert errors == ("entry 1: must be a mapping, got str",)

    def test_missing_url(self, write_credentials):
        """Test the url field is required."""
        errors = self._errors(write_credentials, "- username: ci\n  password: pw\n")

        assert len(errors) == 1
        assert errors[0].startswith("entry 1: url:")

    def test_malformed_url(self, write_credentials):
        """Test patterns must be protocol-qualified URLs."""
        errors = self._errors(write_credentials, "- url: github.com/example\n  username: ci\n  password: pw\n")

        assert "Invalid Git URL format" in errors[0]
        assert "Value error" not in errors[0]

    def test_git_protocol_rejected(self, write_credentials):
        """Test git:// patterns are rejected because they never authenticate."""
        errors = self._errors(write_credentials, "- url: git://github.com/\n  username: ci\n  password: pw\n")

        assert "git:// URLs do not support authentication" in errors[0]

    def test_unknown_kind(self, write_credentials):
        """Test kinds outside the closed set are rejected."""
        errors = self._errors(write_credentials, "- url: https://github.com/\n  kind: token\n  password: pw\n")

        assert errors[0].startswith("entry 1 (https://github.com/): kind:")

    def test_unknown_field(self, write_credentials):
        """Test unknown fields are reported by name."""
        errors = self._errors(
            write_credentials, "- url: https://github.com/\n  username: ci\n  password: pw\n  token: x\n"
        )

        assert errors == ("entry 1 (https://github.com/): token: unknown field",)

    def test_missing_secret(self, write_credentials):
        """Test an entry needs a password or a private key."""
        errors = self._errors(write_credentials, "- url: https://github.com/\n  username: ci\n")

        assert "missing secret" in errors[0]

    def test_plaintext_without_username(self, write_credentials):
        """Test plaintext entries need a username."""
        errors = self._errors(write_credentials, "- url: https://github.com/\n  password: pw\n")

        assert errors == ("entry 1 (https://github.com/): username: Field required for plaintext credentials",)

    def test_ambiguous_secret(self, write_credentials):
        """Test password and private key together need an explicit kind."""
        errors = self._errors(write_credentials, "- url: https://github.com/\n  password: pw\n  private_key: k\n")

        assert "set kind explicitly" in errors[0]

    def test_kind_does_not_fit_protocol(self, write_credentials):
        """Test SSH keys cannot be used with https patterns."""
        errors = self._errors(write_credentials, "- url: https://github.com/\n  private_key: k\n")

        assert "requires plaintext" in errors[0]

    def test_plaintext_on_ssh(self, write_credentials):
        """Test passwords cannot be used with ssh patterns."""
        errors = self._errors(write_credentials, "- url: 'git@github.com:'\n  username: git\n  password: pw\n")

        assert "requires ssh_key" in errors[0]

    def test_plaintext_rejects_key_fields(self, write_credentials):
        """Test key-only fields are refused on plaintext entries."""
        errors = self._errors(
            write_credentials,
            "- url: https://github.com/\n  kind: plaintext\n  username: ci\n  password: pw\n  passphrase: x\n",
        )

        assert errors == ("entry 1 (https://github.com/): passphrase: not allowed for plaintext credentials",)

    def test_both_key_sources(self, write_credentials, tmp_path):
        """Test only one private key source may be given."""
        (tmp_path / "key").write_text("k", encoding="utf-8")
        errors = self._errors(
            write_credentials, "- url: 'git@github.com:'\n  private_key: k\n  private_key_file: key\n"
        )

        assert "not both" in errors[0]

    def test_missing_key_file(self, write_credentials):
        """Test key files must exist."""
        errors = self._errors(write_credentials, "- url: 'git@github.com:'\n  private_key_file: nowhere\n")

        assert "key file does not exist" in errors[0]

    def test_empty_key_file(self, write_credentials, tmp_path):
        """Test key files must not be empty."""
        (tmp_path / "empty").write_text("\n", encoding="utf-8")
        errors = self._errors(write_credentials, "- url: 'git@github.com:'\n  private_key_file: empty\n")

        assert "key file is empty" in errors[0]

    def test_unresolved_environment_reference(self, write_credentials, monkeypatch):
        """Test an unset ${VAR} reference is a validation problem."""
        monkeypatch.delenv("TEST_UNSET_TOKEN", raising=False)
        errors = self._errors(
            write_credentials, "- url: https://github.com/\n  username: ci\n  password: ${TEST_UNSET_TOKEN}\n"
        )

        assert errors == ("entry 1 (https://github.com/): password: Environment variable not set: TEST_UNSET_TOKEN",)

    def test_errors_from_several_entries(self, write_credentials):
        """Test every invalid entry contributes its problems in order."""
        errors = self._errors(
            write_credentials,
            """
- url: https://github.com/
  username: ci
  password: pw
- url: https://gitlab.com/
  password: pw
- 42
""",
        )

        assert len(errors) == 2
        assert errors[0].startswith("entry 2")
        assert errors[1].startswith("entry 3")

    def test_invalid_store_has_no_entries(self, write_credentials):
        """Test an invalid store carries errors but no entries."""
        store = CredentialStore.load(write_credentials("- url: https://github.com/\n"))

        assert not store.valid
        assert store.entries == ()
        assert store.errors


class TestFindByUrl:
    """Test URL lookup."""

    def test_exact_match(self):
        """Test an exact pattern matches its URL."""
        store = CredentialStore("c.yml", [_entry("https://github.com/a/b.git")])

        assert store.find_by_url("https://github.com/a/b.git").index == 0

    def test_exact_beats_longer_scan_order(self):
        """Test exact matches win even after prefix entries."""
        store = CredentialStore(
            "c.yml",
            [_entry("https://github.com/a/", 0), _entry("https://github.com/a/b.git", 1)],
        )

        assert store.find_by_url("https://github.com/a/b.git").index == 1

    def test_longest_prefix(self):
        """Test the longest matching prefix wins regardless of order."""
        store = CredentialStore(
            "c.yml",
            [_entry("https://github.com/a/", 0), _entry("https://github.com/", 1)],
        )

        assert store.find_by_url("https://github.com/a/b.git").index == 0
        assert store.find_by_url("https://github.com/c/d.git").index == 1

    def test_first_entry_wins_for_duplicates(self):
        """Test identical patterns resolve to the first entry in load order."""
        store = CredentialStore(
            "c.yml",
            [_entry("https://github.com/", 0), _entry("https://github.com/", 1)],
        )

        assert store.find_by_url("https://github.com/").index == 0
        assert store.find_by_url("https://github.com/a/b.git").index == 0

    def test_no_match(self):
        """Test None is returned when nothing matches."""
        store = CredentialStore("c.yml", [_entry("https://github.com/")])

        assert store.find_by_url("https://gitlab.com/a/b.git") is None

    def test_prefix_must_end_on_segment(self):
        """Test prefixes do not match in the middle of a name."""
        store = CredentialStore("c.yml", [_entry("https://github.com/example")])

        assert store.find_by_url("https://github.com/examples/repo.git") is None
        assert store.find_by_url("https://github.com/example/repo.git") is not None

    def test_userinfo_does_not_extend_host(self):
        """Test a host-only pattern does not match a URL whose userinfo looks like that host."""
        store = CredentialStore("c.yml", [_entry("https://github.com")])

        assert store.find_by_url("https://github.com:x@evil.example/repo.git") is None
        assert store.find_by_url("https://github.com:8443/a/b.git") is None
        assert store.find_by_url("https://github.com/a/b.git") is not None

    def test_url_whitespace_ignored(self):
        """Test the requested URL is trimmed."""
        store = CredentialStore("c.yml", [_entry("https://github.com/a/b.git")])

        assert store.find_by_url(" https://github.com/a/b.git\n") is not None

    def test_iteration(self):
        """Test stores iterate their entries in order."""
        entries = [_entry("https://github.com/", 0), _entry("https://gitlab.com/", 1)]

        assert list(CredentialStore("c.yml", entries)) == entries


class TestPrefixMatch:
    """Test segment-aligned prefix matching."""

    @pytest.mark.parametrize(
        "pattern,url",
        [
            ("https://github.com/", "https://github.com/a/b.git"),
            ("https://github.com", "https://github.com/a/b.git"),
            ("git@github.com:", "git@github.com:a/b.git"),
            ("https://GitHub.com/a/", "https://github.com/a/b.git"),
            ("ssh://host/team/", "ssh://deploy@host/team/repo"),
            ("https://github.com/a/b", "https://github.com/a/b.git"),
            ("ssh://git@host:2222/team/", "ssh://git@host:2222/team/repo"),
        ],
    )
    def test_matches(self, pattern, url):
        """Test segment-aligned prefixes match."""
        assert _is_prefix_match(pattern, url)

    @pytest.mark.parametrize(
        "pattern,url",
        [
            ("https://github.co", "https://github.com/a/b.git"),
            ("https://github.com/a/b", "https://github.com/a/bc.git"),
            ("https://github.com/", "http://github.com/a/b.git"),
            ("https://github.com", "https://github.com:x@evil.example/repo.git"),
            ("https://github.com/", "https://github.com:8443/a/b.git"),
            ("ssh://deploy@host/team/", "ssh://other@host/team/repo"),
            ("git@github.com", "git@github.com:a/b.git"),
        ],
    )
    def test_does_not_match(self, pattern, url):
        """Test mid-segment prefixes and other hosts, ports or users do not match."""
        assert not _is_prefix_match(pattern, url)


class TestUrlProtocols:
    """Test the protocol table of a store."""

    def test_restricted_to_stored_protocols(self, mixed_credentials):
        """Test only protocols used by stored patterns are listed."""
        store = CredentialStore.load(mixed_credentials)

        assert store.url_protocols == {
            UrlProtocol.HTTPS: CredentialKind.PLAINTEXT,
            UrlProtocol.SSH: CredentialKind.SSH_KEY,
        }

    def test_empty_store(self):
        """Test an empty store uses no protocols."""
        assert CredentialStore("c.yml").url_protocols == {}
