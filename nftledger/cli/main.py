"""
NFT Ledger CLI - command line interface for a persistent collection.

State lives in an SQLite database under the data directory; every command
opens it, performs one ledger call and exits.
"""

import dataclasses
import functools
import logging
from pathlib import Path

import click

from nftledger.core.config import load_config
from nftledger.core.errors import LedgerError
from nftledger.crypto import NULL_ADDRESS, normalize_address, to_checksum_address
from nftledger.utils.logger import get_logger, setup_logging

logger = get_logger("cli")


def ledger_command(func):
    """Turn ledger and input errors into clean CLI failures."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except LedgerError as e:
            logger.debug(f"{type(e).__name__}: {e.kwargs}")
            raise click.ClickException(f"{type(e).__name__}: {e}")
        except ValueError as e:
            raise click.ClickException(str(e))

    return wrapper


def open_store(ctx):
    from nftledger.core.storage import SQLiteStore

    config = ctx.obj["config"]
    config.ensure_dirs()
    return SQLiteStore.open(config.data_dir, config.db_name, config.namespace)


def open_collection(ctx):
    from nftledger.core.access import Collection

    return Collection.open(open_store(ctx), strict=ctx.obj["config"].strict_validation)


def show(address: str) -> str:
    return "null" if address == NULL_ADDRESS else to_checksum_address(address)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--data-dir", default=None, help="Data directory (overrides config)")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False),
              help="JSON config file")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, data_dir, config_path):
    """NFT Ledger - ERC-721 style token registry"""
    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    if data_dir:
        config = dataclasses.replace(config, data_dir=Path(data_dir))

    level = logging.DEBUG if debug else config.level
    setup_logging(level=level, log_file=config.log_file)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# =============================================================================
# Collection Commands
# =============================================================================


@cli.command("init")
@click.option("--name", required=True, help="Collection name")
@click.option("--symbol", required=True, help="Collection symbol")
@click.option("--owner", required=True, help="Collection owner address (may mint and burn)")
@click.pass_context
@ledger_command
def init(ctx, name, symbol, owner):
    """Create a new collection"""
    from nftledger.core.access import Collection

    collection = Collection.create(
        open_store(ctx), name, symbol, owner, strict=ctx.obj["config"].strict_validation,
    )
    click.echo(f"✓ Collection created: {name} ({symbol})")
    click.echo(f"  Owner: {show(collection.authorizer.owner)}")
    click.echo(f"  Database: {ctx.obj['config'].db_path}")


@cli.command("info")
@click.pass_context
@ledger_command
def info(ctx):
    """Show collection statistics"""
    collection = open_collection(ctx)
    click.echo("Collection")
    click.echo("-" * 40)
    click.echo(f"  Owner: {show(collection.authorizer.owner)}")
    for key, value in collection.ledger.stats().items():
        click.echo(f"  {key}: {value}")


@cli.command("events")
@click.option("--limit", default=None, type=int, help="Show only the last N events")
@click.pass_context
@ledger_command
def events(ctx, limit):
    """Show the event log"""
    collection = open_collection(ctx)
    history = collection.ledger.events()
    if limit is not None:
        history = history[-limit:] if limit > 0 else []
    if not history:
        click.echo("No events.")
        return
    for event in history:
        args = ", ".join(show(a) if isinstance(a, str) else str(a) for a in event.args())
        click.echo(f"  {event.name}({args})")


# =============================================================================
# Privileged Commands
# =============================================================================


@cli.command("mint")
@click.option("--caller", required=True, help="Calling address")
@click.option("--to", "to_address", required=True, help="Recipient address")
@click.option("--token-id", required=True, type=int, help="Token id")
@click.pass_context
@ledger_command
def mint(ctx, caller, to_address, token_id):
    """Mint a token"""
    collection = open_collection(ctx)
    collection.mint(caller, to_address, token_id)
    click.echo(f"✓ Minted token {token_id} to {show(collection.owner_of(token_id))}")


@cli.command("burn")
@click.option("--caller", required=True, help="Calling address")
@click.option("--token-id", required=True, type=int, help="Token id")
@click.pass_context
@ledger_command
def burn(ctx, caller, token_id):
    """Burn a token"""
    collection = open_collection(ctx)
    collection.burn(caller, token_id)
    click.echo(f"✓ Burned token {token_id}")


# =============================================================================
# Transfer & Approval Commands
# =============================================================================


@cli.command("transfer")
@click.option("--caller", required=True, help="Calling address")
@click.option("--from", "from_address", required=True, help="Current owner")
@click.option("--to", "to_address", required=True, help="New owner")
@click.option("--token-id", required=True, type=int, help="Token id")
@click.pass_context
@ledger_command
def transfer(ctx, caller, from_address, to_address, token_id):
    """Transfer a token"""
    collection = open_collection(ctx)
    collection.transfer_from(caller, from_address, to_address, token_id)
    click.echo(f"✓ Token {token_id} transferred to {show(collection.owner_of(token_id))}")


@cli.command("approve")
@click.option("--caller", required=True, help="Calling address")
@click.option("--to", "to_address", required=True, help="Address to approve (null address revokes)")
@click.option("--token-id", required=True, type=int, help="Token id")
@click.pass_context
@ledger_command
def approve(ctx, caller, to_address, token_id):
    """Approve an address for one token"""
    collection = open_collection(ctx)
    collection.approve(caller, to_address, token_id)
    click.echo(f"✓ Token {token_id} approved for {show(collection.get_approved(token_id))}")


@cli.command("approve-all")
@click.option("--caller", required=True, help="Token owner")
@click.option("--operator", required=True, help="Operator address")
@click.option("--revoke", is_flag=True, help="Revoke instead of grant")
@click.pass_context
@ledger_command
def approve_all(ctx, caller, operator, revoke):
    """Grant or revoke an operator over all of caller's tokens"""
    collection = open_collection(ctx)
    collection.set_approval_for_all(caller, operator, not revoke)
    state = "revoked" if revoke else "approved"
    click.echo(f"✓ Operator {show(normalize_address(operator))} {state}")


# =============================================================================
# Query Commands
# =============================================================================


@cli.command("owner-of")
@click.argument("token_id", type=int)
@click.pass_context
@ledger_command
def owner_of(ctx, token_id):
    """Show the owner of a token"""
    click.echo(show(open_collection(ctx).owner_of(token_id)))


@cli.command("balance-of")
@click.argument("address")
@click.pass_context
@ledger_command
def balance_of(ctx, address):
    """Show how many tokens an address holds"""
    click.echo(str(open_collection(ctx).balance_of(address)))


@cli.command("get-approved")
@click.argument("token_id", type=int)
@click.pass_context
@ledger_command
def get_approved(ctx, token_id):
    """Show the approved address of a token"""
    click.echo(show(open_collection(ctx).get_approved(token_id)))


@cli.command("is-approved-for-all")
@click.argument("owner")
@click.argument("operator")
@click.pass_context
@ledger_command
def is_approved_for_all(ctx, owner, operator):
    """Show whether operator manages all tokens of owner"""
    click.echo("true" if open_collection(ctx).is_approved_for_all(owner, operator) else "false")


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
def demo():
    """Run an in-memory walk-through of the token lifecycle"""
    from nftledger.core.access import Collection
    from nftledger.core.state import MemoryStore
    from nftledger.crypto import generate_keypair

    click.echo("=" * 60)
    click.echo("  NFT LEDGER - DEMO")
    click.echo("=" * 60)
    click.echo()

    admin = generate_keypair().address
    alice = generate_keypair().address
    bob = generate_keypair().address
    carol = generate_keypair().address

    collection = Collection.create(MemoryStore(), "Demo Collection", "DEMO", admin)
    click.echo(f"📦 Collection {collection.name()} ({collection.symbol()}) owned by {show(admin)}")
    click.echo()

    click.echo("🪙  Admin mints tokens 1 and 2 to Alice...")
    collection.mint(admin, alice, 1)
    collection.mint(admin, alice, 2)
    click.echo(f"  ✓ Alice balance: {collection.balance_of(alice)}")
    click.echo()

    click.echo("✍️  Alice approves Bob for token 1...")
    collection.approve(alice, bob, 1)
    click.echo(f"  ✓ Approved: {show(collection.get_approved(1))}")
    click.echo()

    click.echo("💸 Bob moves token 1 to Carol...")
    collection.transfer_from(bob, alice, carol, 1)
    click.echo(f"  ✓ Owner of 1: {show(collection.owner_of(1))}")
    click.echo(f"  ✓ Approval cleared: {show(collection.get_approved(1))}")
    click.echo()

    click.echo("🔥 Admin burns token 2...")
    collection.burn(admin, 2)
    click.echo(f"  ✓ Alice balance: {collection.balance_of(alice)}")
    click.echo()

    click.echo("📜 Event log:")
    for event in collection.ledger.events():
        args = ", ".join(show(a)[:10] if isinstance(a, str) else str(a) for a in event.args())
        click.echo(f"  {event.name}({args})")
    click.echo()
    click.echo("✅ Demo complete!")


if __name__ == "__main__":
    cli()
