"""CLI commands for inspecting credentials and running git operations with them.

Commands:
    - check: Validate the credentials file and list its entries
    - resolve: Run one authentication round for a URL, as a transport would
    - ls-remote: List remote references using the resolved credentials

Secrets are never printed; ``resolve`` shows a masked preview only.

Example:
    Validate the file and test one URL::

        $ git-credentials --credentials-file creds.yml check
        $ git-credentials resolve git@github.com:example/repo.git --kind ssh_key
"""

import sys
from typing import NoReturn

import click

from git_credentials.credentials import (
    CredentialStore,
    GitCredentialsProvider,
    PlaintextCredential,
    SshKeyCredential,
)
from git_credentials.enums import CredentialKind
from git_credentials.exceptions import CredentialsFileInvalidError, GitCredentialsError

KIND_CHOICES = [kind.value for kind in CredentialKind]


def _provider(ctx: click.Context) -> GitCredentialsProvider:
    settings = ctx.obj["settings"]
    return GitCredentialsProvider(settings.credentials_file, cache=settings.cache_store)


def _mask(value: str, visible: int = 4) -> str:
    """Mask a secret for display."""
    if len(value) <= visible:
        return "*" * len(value)
    return value[:visible] + "*" * (len(value) - visible)


def _fail(error: GitCredentialsError) -> NoReturn:
    click.echo(click.style(f"Error: {error.message}", fg="red"), err=True)
    sys.exit(1)


@click.command(name="check")
@click.pass_context
def check_command(ctx: click.Context) -> None:
    """Validate the credentials file and list its entries.

    Exits with status 1 and lists every problem when the file is invalid.
    """
    settings = ctx.obj["settings"]
    try:
        store = CredentialStore.load(settings.credentials_file)
    except GitCredentialsError as e:
        _fail(e)

    if not store.valid:
        _fail(CredentialsFileInvalidError(str(store.path), store.errors))

    click.echo(click.style(f"{store.path} is valid ({len(store)} entries)", fg="green"))
    for entry in store:
        user = entry.username or "-"
        click.echo(f"  {entry.url_pattern}  {entry.kind.value}  {user}")


@click.command(name="resolve")
@click.argument("url")
@click.option("--username", default=None, help="Username hint, as a transport would pass it")
@click.option(
    "--kind",
    "kinds",
    type=click.Choice(KIND_CHOICES),
    multiple=True,
    help="Allowed credential kind for this round (repeatable, default: all)",
)
@click.option("--show-secret", is_flag=True, help="Print a longer secret preview (still masked)")
@click.pass_context
def resolve_command(ctx: click.Context, url: str, username: str | None, kinds: tuple[str, ...], show_secret: bool):
    """Resolve credentials for URL as one authentication round.

    Examples:

        git-credentials resolve https://github.com/example/repo.git

        git-credentials resolve git@github.com:example/repo.git --username git --kind ssh_key
    """
    allowed = kinds or KIND_CHOICES
    try:
        credential = _provider(ctx).resolve(url, username, allowed)
    except GitCredentialsError as e:
        _fail(e)

    visible = 8 if show_secret else 4
    click.echo(f"Kind:     {credential.kind.value}")
    click.echo(f"Username: {credential.username}")
    if isinstance(credential, PlaintextCredential):
        click.echo(f"Password: {_mask(credential.password, visible)}")
    elif isinstance(credential, SshKeyCredential):
        click.echo(f"Key:      {len(credential.private_key)} characters of key material")
        click.echo(f"Passphrase: {'yes' if credential.passphrase else 'no'}")


@click.command(name="ls-remote")
@click.argument("url")
@click.pass_context
def ls_remote_command(ctx: click.Context, url: str) -> None:
    """List references of the remote at URL using stored credentials."""
    from git_credentials.git.transport import ls_remote

    settings = ctx.obj["settings"]
    try:
        refs = ls_remote(url, _provider(ctx), key_directory=settings.key_directory)
    except GitCredentialsError as e:
        _fail(e)

    for name, oid in refs:
        click.echo(f"{oid}\t{name}")
