"""
Main CLI entry point for jarstore.

Every invocation opens a JSON file store, rebuilds the ledger from the
records already in it, runs one command and exits.
"""

import json
import logging
from dataclasses import asdict

import click

from jarstore.core import Config, JarStoreError
from jarstore.jar import Jar
from jarstore.storage import JsonFileStore, QuotaLedger


def open_jar(store_path: str, owner: str, config: Config) -> Jar:
    """Open a jar on a JSON file store with a ledger rebuilt from its records."""
    store = JsonFileStore(store_path, max_record_size=config.max_record_size)
    ledger = QuotaLedger(config.quota_bytes)
    jar = Jar(owner, store, ledger, config)
    jar.reconcile()
    return jar


@click.group()
@click.option("--store", "store_path", default="jarstore.json", type=click.Path(dir_okay=False), help="JSON file holding the records")
@click.option("--owner", default="default", help="Owner charged for usage")
@click.option("--quota", default=None, type=int, help="Shared quota in bytes")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, store_path, owner, quota, verbose):
    """jarstore - chunked, compressed, quota-tracked key-value storage."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)-8s [%(name)s:%(funcName)s] : %(message)s",
        )
    config = Config(quota_bytes=quota) if quota else Config()
    try:
        ctx.obj = open_jar(store_path, owner, config)
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Failed to open store {store_path}: {e}")


def run(action):
    """Run a jar action, turning jarstore errors into a clean exit."""
    try:
        return action()
    except JarStoreError as e:
        raise click.ClickException(str(e))


@cli.command()
@click.argument("key")
@click.argument("value")
@click.option("--json", "as_json", is_flag=True, help="Parse VALUE as JSON before storing")
@click.pass_obj
def put(jar, key, value, as_json):
    """Store VALUE under KEY."""
    if as_json:
        try:
            value = json.loads(value)
        except ValueError as e:
            raise click.BadParameter(f"not valid JSON: {e}", param_hint="VALUE")
    run(lambda: jar.store(key, value))
    click.echo(f"Stored {key} ({jar.ledger.usage(jar.owner_id, key)} bytes)")


@cli.command()
@click.argument("key")
@click.pass_obj
def get(jar, key):
    """Print the value stored under KEY."""
    value = run(lambda: jar.retrieve(key))
    if isinstance(value, str):
        click.echo(value)
    else:
        click.echo(json.dumps(value, indent=2, ensure_ascii=False))


@cli.command()
@click.pass_obj
def keys(jar):
    """List stored keys."""
    for key in jar.list_keys():
        click.echo(key)


@cli.command()
@click.argument("key")
@click.pass_obj
def delete(jar, key):
    """Delete KEY and every record behind it."""
    run(lambda: jar.delete(key))
    click.echo(f"Deleted {key}")


@cli.command()
@click.pass_obj
def stats(jar):
    """Show shared quota usage."""
    s = jar.quota_stats()
    click.echo(f"Used:      {s.used} bytes")
    click.echo(f"Available: {s.available} bytes")
    click.echo(f"Remaining: {s.remaining} bytes")
    click.echo(f"Utilization: {s.utilization_percent:.2f}%")


@cli.command()
@click.pass_obj
def report(jar):
    """Print the full quota report as JSON."""
    click.echo(json.dumps(asdict(jar.quota_report()), indent=2))


@cli.command()
@click.argument("keys", nargs=-1)
@click.pass_obj
def migrate(jar, keys):
    """Move bare values (all, or KEYS) under jarstore management."""
    result = jar.migrate(list(keys) if keys else None)
    click.echo(f"Migrated: {', '.join(result.migrated) or '-'}")
    click.echo(f"Skipped:  {', '.join(result.skipped) or '-'}")
    click.echo(f"Failed:   {', '.join(result.failed) or '-'}")


@cli.command()
@click.pass_obj
def optimize(jar):
    """Re-write every managed key under the current policy."""
    result = jar.optimize()
    click.echo(f"Keys optimized: {result.keys_optimized}")
    click.echo(f"Bytes saved:    {result.bytes_saved}")


@cli.command()
@click.pass_obj
def cleanup(jar):
    """Delete every key of the owner."""
    count = len(jar.list_keys())
    jar.cleanup()
    click.echo(f"Removed {count} keys for {jar.owner_id}")


if __name__ == "__main__":
    cli()
