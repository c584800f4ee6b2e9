"""CLI entry point for git-credentials."""

import sys
from pathlib import Path

import click
import structlog

from git_credentials.cli.credentials import check_command, ls_remote_command, resolve_command
from git_credentials.config.settings import CredentialsSettings
from git_credentials.credentials import KeyringBackend, SecretReferenceResolver, set_resolver
from git_credentials.exceptions import ConfigurationError
from git_credentials.utils.logging_config import configure_logging

log = structlog.get_logger(__name__)


@click.group()
@click.option(
    "--credentials-file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Path to the credentials file (env: GIT_CREDENTIALS_CREDENTIALS_FILE)",
)
@click.option("--log-level", default=None, help="Logging level (env: GIT_CREDENTIALS_LOG_LEVEL)")
@click.option("--log-json/--no-log-json", default=None, help="Emit JSON log lines")
@click.pass_context
def cli(ctx: click.Context, credentials_file: Path | None, log_level: str | None, log_json: bool | None) -> None:
    """git-credentials: resolve credentials for git remotes from a credentials file."""
    try:
        settings = CredentialsSettings.load(
            credentials_file=credentials_file,
            log_level=log_level,
            log_json=log_json,
        )
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    configure_logging(settings.log_level, json_output=settings.log_json)
    set_resolver(SecretReferenceResolver(keyring_backend=KeyringBackend(settings.keyring_namespace)))
    log.debug("settings_loaded", credentials_file=str(settings.credentials_file))

    ctx.obj = {"settings": settings}


cli.add_command(check_command)
cli.add_command(resolve_command)
cli.add_command(ls_remote_command)


if __name__ == "__main__":
    cli()
