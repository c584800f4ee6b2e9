"""Resolution of secret references found in the credentials file.

Secret fields (``password``, ``private_key``, ``passphrase``) may hold the
secret itself or point at it:

1. ``${VAR_NAME}`` - Environment variable
2. ``@keyring:service/key`` - OS keyring
3. Anything else - Used as-is
"""

import logging
import re

from git_credentials.exceptions import CredentialNotFoundError

from .environment_backend import EnvironmentBackend
from .keyring_backend import KeyringBackend

logger = logging.getLogger(__name__)


class SecretReferenceResolver:
    """Resolve secret references to actual values.

    Example:
        >>> resolver = SecretReferenceResolver()
        >>> password = resolver.resolve("${GITHUB_TOKEN}")
        >>> key = resolver.resolve("@keyring:gitlab/deploy_key")
        >>> direct = resolver.resolve("literal-value")
    """

    KEYRING_PATTERN = re.compile(r"^@keyring:([^/]+)/(.+)$")
    ENV_PATTERN = re.compile(r"^\$\{([A-Z_][A-Z0-9_]*)\}$")

    def __init__(
        self,
        environment_backend: EnvironmentBackend | None = None,
        keyring_backend: KeyringBackend | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            environment_backend: Backend for ``${VAR}`` references
            keyring_backend: Backend for ``@keyring:`` references
        """
        self.environment_backend = environment_backend or EnvironmentBackend()
        self.keyring_backend = keyring_backend or KeyringBackend()

    def is_reference(self, value: str) -> bool:
        """Check whether a value is a reference rather than a literal secret."""
        return bool(self.ENV_PATTERN.match(value) or self.KEYRING_PATTERN.match(value))

    def resolve(self, value: str) -> str:
        """Resolve a secret reference to its value.

        Args:
            value: Secret reference or literal secret

        Returns:
            Resolved secret value

        Raises:
            CredentialNotFoundError: If the referenced secret doesn't exist
            BackendNotAvailableError: If the keyring is unavailable
            CredentialError: If the backend fails
        """
        env_match = self.ENV_PATTERN.match(value)
        if env_match:
            return self._resolve_environment(env_match.group(1), reference=value)

        keyring_match = self.KEYRING_PATTERN.match(value)
        if keyring_match:
            return self._resolve_keyring(keyring_match.group(1), keyring_match.group(2), reference=value)

        return value

    def _resolve_environment(self, var_name: str, reference: str) -> str:
        credential = self.environment_backend.get(var_name)

        if credential is None:
            raise CredentialNotFoundError(
                f"Environment variable not set: {var_name}",
                reference=reference,
                suggestion=f"Set the environment variable:\n  export {var_name}='your-credential-here'",
            )

        logger.debug(f"Resolved environment credential: {var_name}")
        return credential

    def _resolve_keyring(self, service: str, key: str, reference: str) -> str:
        credential = self.keyring_backend.get(service, key)

        if credential is None:
            raise CredentialNotFoundError(
                f"Credential not found in keyring: {service}/{key}",
                reference=reference,
                suggestion=(
                    f"Store the credential with:\n"
                    f"  keyring set {self.keyring_backend.namespace}/{service} {key}"
                ),
            )

        logger.debug(f"Resolved keyring credential: {service}/{key}")
        return credential


# Global resolver instance (can be configured per application)
_resolver: SecretReferenceResolver | None = None


def get_resolver() -> SecretReferenceResolver:
    """Get or create the global secret reference resolver."""
    global _resolver
    if _resolver is None:
        _resolver = SecretReferenceResolver()
    return _resolver


def set_resolver(resolver: SecretReferenceResolver | None) -> None:
    """Replace the global secret reference resolver.

    Args:
        resolver: Resolver to use, or None to fall back to the default
    """
    global _resolver
    _resolver = resolver
