"""CLI entry point for did-wallet.

Invoked as::

    did-wallet [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m did_wallet.cli.main

Commands
--------
init          Create a new identity (and register it when a registrar is set)
info          Show the stored DID, address, and public key
register      Retry registration of the stored identity
sign          Sign a message with the holder key
issue         Issue a self-signed credential and store it
credentials   List stored credentials
delete        Delete a stored credential
present       Build a presentation from stored credentials
verify        Verify a credential or presentation token
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from did_wallet.config import DEFAULT_NETWORK, VerifierPolicy, WalletConfig
from did_wallet.credentials.verifier import Verifier
from did_wallet.errors import WalletError
from did_wallet.storage.store import JsonFileStore
from did_wallet.wallet import Wallet

console = Console()

DEFAULT_STORE_PATH = Path.home() / ".did-wallet" / "wallet.json"


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="did-wallet")
@click.option(
    "--store",
    type=click.Path(dir_okay=False),
    envvar="DID_WALLET_STORE",
    default=str(DEFAULT_STORE_PATH),
    show_default=True,
    help="JSON file holding the wallet.",
)
@click.option(
    "--network",
    envvar="DID_WALLET_NETWORK",
    default=DEFAULT_NETWORK,
    show_default=True,
    help="Network segment for newly created DIDs.",
)
@click.option(
    "--registrar-url",
    envvar="DID_WALLET_REGISTRAR_URL",
    default=None,
    help="Base URL of the DID registrar service.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    default="WARNING",
    show_default=True,
    help="Logging level.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    store: str,
    network: str,
    registrar_url: str | None,
    log_level: str,
) -> None:
    """Self-sovereign identity wallet: DIDs, credentials, and presentations"""
    logging.basicConfig(level=getattr(logging, log_level))
    ctx.ensure_object(dict)
    ctx.obj["store"] = store
    ctx.obj["network"] = network
    ctx.obj["registrar_url"] = registrar_url


def _wallet(ctx: click.Context) -> Wallet:
    """Build the wallet for this invocation; it is closed when the command ends."""
    try:
        config = WalletConfig(
            network=ctx.obj["network"], registrar_url=ctx.obj["registrar_url"]
        )
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        sys.exit(1)
    return ctx.with_resource(Wallet(JsonFileStore(ctx.obj["store"]), config=config))


def _fail(exc: Exception) -> None:
    console.print(f"[red]Error:[/red] {escape(str(exc))}")
    sys.exit(1)


# ------------------------------------------------------------------
# version
# ------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from did_wallet import __version__

    console.print(f"[bold]did-wallet[/bold] v{__version__}")


# ------------------------------------------------------------------
# Identity commands
# ------------------------------------------------------------------


@cli.command(name="init")
@click.option("--force", is_flag=True, help="Replace an existing identity.")
@click.pass_context
def init_command(ctx: click.Context, force: bool) -> None:
    """Create a new identity in the wallet."""
    wallet = _wallet(ctx)
    if wallet.has_identity() and not force:
        console.print(
            "[red]Error:[/red] wallet already holds an identity "
            f"({wallet.info().did}); use --force to replace it."
        )
        sys.exit(1)

    try:
        created = wallet.create_identity()
    except WalletError as exc:
        _fail(exc)
        return

    console.print(f"[green]Created[/green] identity [bold]{created.did}[/bold]")
    console.print(f"  Address:    {created.info.address}")
    registration = created.registration
    if registration.registered and registration.receipt is not None:
        console.print(f"  Registered: tx {registration.receipt.tx_hash}")
    elif registration.attempted:
        console.print(
            f"[yellow]Warning:[/yellow] registration failed: {escape(registration.error or '')}"
        )
        console.print("  Run 'did-wallet register' to retry.")
    else:
        console.print("  Registered: no (no registrar configured)")


@cli.command(name="info")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of text.")
@click.option("--check", is_flag=True, help="Ask the registrar whether the DID is registered.")
@click.pass_context
def info_command(ctx: click.Context, as_json: bool, check: bool) -> None:
    """Show the stored identity."""
    wallet = _wallet(ctx)
    try:
        info = wallet.info()
        status = wallet.registration_status() if check else None
    except WalletError as exc:
        _fail(exc)
        return

    if as_json:
        data: dict[str, object] = dict(info.to_dict())
        if status is not None:
            data["registered"] = status.registered
            if status.error:
                data["registrationError"] = status.error
        click.echo(json.dumps(data, indent=2))
        return
    console.print(f"  DID:        {info.did}")
    console.print(f"  Address:    {info.address}")
    console.print(f"  Public key: {info.public_key}")
    if status is None:
        return
    if status.registered is None:
        console.print(f"  Registered: unknown ({escape(status.error or '')})")
    else:
        console.print(f"  Registered: {'yes' if status.registered else 'no'}")


@cli.command(name="register")
@click.pass_context
def register_command(ctx: click.Context) -> None:
    """Retry registration of the stored identity."""
    try:
        outcome = _wallet(ctx).register()
    except WalletError as exc:
        _fail(exc)
        return

    if not outcome.registered or outcome.receipt is None:
        console.print(f"[red]Error:[/red] registration failed: {escape(outcome.error or '')}")
        sys.exit(1)
    console.print(f"[green]Registered[/green] in transaction {outcome.receipt.tx_hash}")
    if outcome.receipt.block_number is not None:
        console.print(f"  Block: {outcome.receipt.block_number}")


@cli.command(name="sign")
@click.argument("message")
@click.pass_context
def sign_command(ctx: click.Context, message: str) -> None:
    """Sign MESSAGE with the holder key and print the signature."""
    try:
        signed = _wallet(ctx).sign_message(message)
    except WalletError as exc:
        _fail(exc)
        return
    click.echo(signed.signature)


# ------------------------------------------------------------------
# Credential commands
# ------------------------------------------------------------------


def _parse_claims(claim: tuple[str, ...]) -> dict[str, str]:
    claims: dict[str, str] = {}
    for item in claim:
        name, sep, value = item.partition("=")
        if not sep or not name:
            console.print(f"[red]Error:[/red] claim {escape(item)!r} is not NAME=VALUE")
            sys.exit(1)
        claims[name] = value
    return claims


@cli.command(name="issue")
@click.option(
    "--claim",
    "-c",
    multiple=True,
    required=True,
    help="Claim as NAME=VALUE (repeatable, order is kept).",
)
@click.option("--subject", default=None, help="Subject DID (defaults to the holder).")
@click.option(
    "--expires-in",
    type=int,
    default=None,
    help="Lifetime in seconds; the credential never expires when omitted.",
)
@click.pass_context
def issue_command(
    ctx: click.Context,
    claim: tuple[str, ...],
    subject: str | None,
    expires_in: int | None,
) -> None:
    """Issue a self-signed credential and store it."""
    claims = _parse_claims(claim)
    expires_at = None
    if expires_in is not None:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)

    try:
        credential = _wallet(ctx).issue_credential(
            claims, subject_did=subject, expires_at=expires_at
        )
    except (WalletError, ValueError) as exc:
        _fail(exc)
        return

    console.print(f"[green]Issued[/green] credential [bold]{credential.id}[/bold]")
    click.echo(credential.token)


@cli.command(name="credentials")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table.")
@click.pass_context
def credentials_command(ctx: click.Context, as_json: bool) -> None:
    """List stored credentials."""
    credentials = _wallet(ctx).list_credentials()
    if as_json:
        click.echo(json.dumps([c.to_dict() for c in credentials], indent=2))
        return
    if not credentials:
        console.print("[yellow]No credentials stored.[/yellow]")
        return

    table = Table(title="Stored Credentials", show_header=True)
    table.add_column("ID", style="cyan")
    table.add_column("Subject")
    table.add_column("Issued")
    table.add_column("Claims")
    for credential in credentials:
        table.add_row(
            credential.id,
            credential.subject_did,
            credential.issued_at.isoformat(),
            escape(", ".join(f"{k}={v}" for k, v in credential.claims.items())),
        )
    console.print(table)


@cli.command(name="delete")
@click.argument("credential_id")
@click.pass_context
def delete_command(ctx: click.Context, credential_id: str) -> None:
    """Delete the stored credential CREDENTIAL_ID."""
    if not _wallet(ctx).delete_credential(credential_id):
        console.print(f"[red]Error:[/red] no stored credential {escape(credential_id)!r}")
        sys.exit(1)
    console.print(f"[green]Deleted[/green] credential {credential_id}")


# ------------------------------------------------------------------
# Presentation and verification
# ------------------------------------------------------------------


@cli.command(name="present")
@click.argument("credential_ids", nargs=-1)
@click.option("--challenge", default=None, help="Verifier challenge to bind to.")
@click.pass_context
def present_command(
    ctx: click.Context, credential_ids: tuple[str, ...], challenge: str | None
) -> None:
    """Build a presentation from CREDENTIAL_IDS (all stored credentials if none)."""
    try:
        presentation = _wallet(ctx).create_presentation(
            list(credential_ids) or None, challenge=challenge
        )
    except (WalletError, KeyError) as exc:
        _fail(exc)
        return
    click.echo(presentation.token)


@cli.command(name="verify")
@click.argument("token")
@click.option("--challenge", default=None, help="Challenge the presentation must carry.")
@click.option(
    "--require-challenge",
    is_flag=True,
    help="Reject presentations that are not bound to a challenge.",
)
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON.")
def verify_command(
    token: str,
    challenge: str | None,
    require_challenge: bool,
    as_json: bool,
) -> None:
    """Verify TOKEN, a credential or presentation ("-" reads stdin)."""
    if token == "-":
        token = sys.stdin.read().strip()

    verifier = Verifier(policy=VerifierPolicy(require_challenge=require_challenge))
    result = verifier.verify(token, challenge=challenge)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        for outcome in result.reasons:
            label = "[green]PASS[/green]" if outcome.passed else "[red]FAIL[/red]"
            detail = f"  {escape(outcome.detail)}" if outcome.detail else ""
            console.print(f"  {label}  {escape(outcome.rule)}{detail}")
        if result.verified:
            kind = result.kind.value if result.kind else "token"
            console.print(
                f"\n[green]Verified {kind} for {result.subject_or_holder_did}.[/green]"
            )
        else:
            failure = result.failure.value if result.failure else "unknown"
            console.print(f"\n[red]Rejected:[/red] {failure}")

    if not result.verified:
        sys.exit(1)


if __name__ == "__main__":
    cli()
