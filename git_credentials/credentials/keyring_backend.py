"""OS-level keyring backend for ``@keyring:service/key`` secret references.

Platform Support:
- Linux: Secret Service API (GNOME Keyring, KWallet)
- macOS: Keychain
- Windows: Windows Credential Locker
"""

import logging
from typing import cast

import keyring
from keyring.errors import KeyringError

from git_credentials.exceptions import BackendNotAvailableError, CredentialError

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "git-credentials"


class KeyringBackend:
    """Read secrets from the system keyring.

    Secrets are namespaced as ``<namespace>/<service>`` so that entries
    stored for git remotes do not collide with other applications.

    Example:
        >>> backend = KeyringBackend()
        >>> token = backend.get('github', 'ci_token')
    """

    def __init__(self, namespace: str = DEFAULT_NAMESPACE) -> None:
        """Initialize keyring backend.

        Args:
            namespace: Prefix applied to every keyring service name
        """
        self.namespace = namespace

    @property
    def name(self) -> str:
        """Get backend identifier.

        Returns:
            Backend name constant "keyring"
        """
        return "keyring"

    @property
    def available(self) -> bool:
        """Check if a functional keyring backend is configured.

        Returns False on headless systems where keyring falls back to its
        ``fail`` backend or cannot initialize one.
        """
        try:
            backend = keyring.get_keyring()
        except KeyringError as e:
            logger.debug(f"Keyring not available: {e}")
            return False
        return type(backend).__module__ != "keyring.backends.fail"

    def get(self, service: str, key: str) -> str | None:
        """Retrieve a secret from the OS keyring.

        Args:
            service: Service identifier (e.g., 'github')
            key: Key within service (e.g., 'ci_token')

        Returns:
            Secret value or None if not found

        Raises:
            BackendNotAvailableError: If keyring is not available
            CredentialError: If keyring operation fails
        """
        if not self.available:
            raise BackendNotAvailableError(
                "Keyring backend is not available",
                reference=f"@keyring:{service}/{key}",
                suggestion="Configure a keyring backend or use an environment variable: ${VAR_NAME}",
            )

        try:
            credential = cast(str | None, keyring.get_password(f"{self.namespace}/{service}", key))
        except KeyringError as e:
            raise CredentialError(f"Keyring operation failed: {e}", reference=f"@keyring:{service}/{key}") from e

        if credential is not None:
            logger.debug(f"Retrieved credential from keyring: {service}/{key}")

        return credential
