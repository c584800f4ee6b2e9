"""Environment variable backend for ``${VAR_NAME}`` secret references."""

import logging
import os

logger = logging.getLogger(__name__)


class EnvironmentBackend:
    """Read secrets from environment variables.

    This backend suits CI pipelines and containers, where the password or
    deploy key for a remote is injected as an environment variable and the
    credentials file only names it.

    Example:
        >>> import os
        >>> os.environ['GITHUB_TOKEN'] = 'ghp_abc123'
        >>> backend = EnvironmentBackend()
        >>> backend.get('GITHUB_TOKEN')
        'ghp_abc123'
    """

    @property
    def name(self) -> str:
        """Get backend identifier.

        Returns:
            Backend name constant "environment"
        """
        return "environment"

    @property
    def available(self) -> bool:
        """Environment backend is always available."""
        return True

    def get(self, var_name: str) -> str | None:
        """Retrieve a secret from an environment variable.

        Args:
            var_name: Environment variable name (e.g., 'GITHUB_TOKEN')

        Returns:
            Secret value or None if not set
        """
        value = os.getenv(var_name)

        if value is not None:
            logger.debug(f"Retrieved credential from environment: {var_name}")

        return value
