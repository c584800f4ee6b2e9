"""Configuration for git-credentials.

Example:
    >>> from git_credentials.config import CredentialsSettings
    >>> settings = CredentialsSettings.load(credentials_file="creds.yml")
"""

from git_credentials.config.settings import CredentialsSettings

__all__ = ["CredentialsSettings"]
