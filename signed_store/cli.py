"""
Command-line entry point for signed-store.
"""

import json
import sys
from datetime import datetime, timedelta, timezone

import click

from signed_store.config import ACCESS_TRACKING_MODES, Settings
from signed_store.constants import (
    DEFAULT_ACCESS_TRACKING,
    DEFAULT_LISTEN,
    DEFAULT_SWEEP_INTERVAL,
    DEFAULT_TTL,
)
from signed_store.crypto import ed25519_generate
from signed_store.errors import KeyLoadError, StorageError, VerificationError
from signed_store.keyring import (
    TrustedKeyring,
    identity_from_public_key,
    load_keyring_file,
    read_secret_key,
    secret_key_document,
)
from signed_store.logger import configure_logging, get_logger
from signed_store.message import sign_message
from signed_store.storage import ContentStore, load_access_tracker
from signed_store.utils import parse_duration
from signed_store.verifier import VerificationGate

log = get_logger("signed_store.cli")


def _duration(ctx, param, value):
    try:
        parse_duration(value)
    except ValueError as e:
        raise click.BadParameter(str(e))
    return value


def _expiry_from_now(expires_in):
    if not expires_in:
        return None
    expiry = datetime.now(timezone.utc) + timedelta(seconds=parse_duration(expires_in))
    return expiry.strftime("%Y-%m-%dT%H:%M:%SZ")


def _load_keyring(path) -> TrustedKeyring:
    try:
        keyring = load_keyring_file(path)
    except KeyLoadError as e:
        log.error(f"failed to read keys: {e}")
        raise click.ClickException(f"failed to read keys: {e}")
    log.info("accept keys:")
    for ident in keyring:
        log.info(f"  key: {ident.fingerprint} ({ident.status})")
        for uid in ident.user_ids:
            log.info(f"    User ID: {uid}")
    return keyring


def _open_store(store_path, ttl, access_tracking, ledger_path=None) -> ContentStore:
    try:
        tracker = load_access_tracker(store_path, {"provider": access_tracking, "ledger_path": ledger_path})
        return ContentStore(store_path, parse_duration(ttl), tracker=tracker)
    except StorageError as e:
        log.error(f"failed to open store: {e}")
        raise click.ClickException(f"failed to open store: {e}")


@click.group()
@click.option("--log-level", default="INFO", envvar="SIGNED_STORE_LOG_LEVEL", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
@click.option("--log-file", default=None, envvar="SIGNED_STORE_LOG_FILE", type=click.Path(dir_okay=False))
@click.pass_context
def cli(ctx, log_level, log_file):
    """signed-store - signed file uploader with idle expiry."""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level
    ctx.obj["log_file"] = log_file


@cli.command()
@click.argument("key_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("store_path", type=click.Path(file_okay=False))
@click.option("--listen", "-l", default=DEFAULT_LISTEN, envvar="SIGNED_STORE_LISTEN", show_default=True,
              metavar="ADDRESS", help="Listen address")
@click.option("--ttl", "-t", default=DEFAULT_TTL, envvar="SIGNED_STORE_TTL", show_default=True,
              metavar="DURATION", callback=_duration, help="Duration to expire a file after its last access")
@click.option("--sweep-interval", default=DEFAULT_SWEEP_INTERVAL, envvar="SIGNED_STORE_SWEEP_INTERVAL",
              show_default=True, metavar="DURATION", callback=_duration, help="How often expired files are pruned")
@click.option("--access-tracking", default=DEFAULT_ACCESS_TRACKING, envvar="SIGNED_STORE_ACCESS_TRACKING",
              show_default=True, type=click.Choice(ACCESS_TRACKING_MODES), help="Where last-access times are kept")
@click.option("--ledger-path", default=None, envvar="SIGNED_STORE_LEDGER_PATH", type=click.Path(dir_okay=False),
              help="Access ledger location for --access-tracking=sqlite")
@click.pass_context
def serve(ctx, key_file, store_path, listen, ttl, sweep_interval, access_tracking, ledger_path):
    """Serve STORE_PATH, accepting uploads signed by a key in KEY_FILE."""
    import uvicorn
    from signed_store.app import create_app

    try:
        settings = Settings(
            key_file=key_file,
            store_path=store_path,
            listen=listen,
            ttl=ttl,
            sweep_interval=sweep_interval,
            access_tracking=access_tracking,
            ledger_path=ledger_path,
            log_level=ctx.obj["log_level"],
            log_file=ctx.obj["log_file"],
        )
        host, port = settings.host, settings.port
    except ValueError as e:
        raise click.BadParameter(str(e))

    configure_logging(settings.log_level, to_file=settings.log_file)
    log.info(f"listen on: {settings.listen}")
    keyring = _load_keyring(settings.key_file)
    log.info(f"files ttl: {settings.ttl}")
    store = _open_store(settings.store_path, settings.ttl, settings.access_tracking, settings.ledger_path)

    app = create_app(VerificationGate(keyring), store, sweep_interval=settings.sweep_interval_seconds)
    try:
        uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())
    finally:
        store.close()


@cli.command()
@click.option("--out", "-o", "out_path", required=True, type=click.Path(dir_okay=False),
              help="Where to write the secret key")
@click.option("--user-id", "-u", "user_ids", multiple=True, help="Label for the key (repeatable)")
@click.option("--expires-in", default=None, callback=lambda c, p, v: v and _duration(c, p, v),
              metavar="DURATION", help="Key lifetime recorded in the keyring entry")
def keygen(out_path, user_ids, expires_in):
    """Generate a signing key; print its keyring entry."""
    priv, pub = ed25519_generate()
    with open(out_path, "w") as f:
        json.dump(secret_key_document(priv, user_ids), f, indent=2)

    expires_at = _expiry_from_now(expires_in)
    ident = identity_from_public_key(pub, user_ids, expires_at=expires_at)
    click.echo(TrustedKeyring(identities=(ident,)).to_json())


@cli.command()
@click.option("--key", "-k", "key_path", required=True, type=click.Path(exists=True, dir_okay=False),
              help="Secret key written by keygen")
@click.option("--expires-in", default=None, callback=lambda c, p, v: v and _duration(c, p, v),
              metavar="DURATION", help="Signature lifetime")
@click.argument("input", type=click.File("rb"), default="-")
@click.option("--output", "-o", type=click.File("wb"), default="-")
def sign(key_path, expires_in, input, output):
    """Sign INPUT (default stdin) and write the signed message."""
    try:
        priv = read_secret_key(key_path)
    except KeyLoadError as e:
        raise click.ClickException(str(e))

    expires_at = _expiry_from_now(expires_in)
    output.write(sign_message(input.read(), priv, expires_at=expires_at))


@cli.command()
@click.argument("key_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("input", type=click.File("rb"), default="-")
def verify(key_file, input):
    """Check that INPUT is signed by a key in KEY_FILE."""
    try:
        gate = VerificationGate(load_keyring_file(key_file))
    except KeyLoadError as e:
        raise click.ClickException(f"failed to read keys: {e}")

    try:
        ident = gate.verify(input.read())
    except VerificationError as e:
        click.echo(f"BAD signature: {e}", err=True)
        sys.exit(1)

    labels = ", ".join(ident.user_ids)
    click.echo(f"good signature from {ident.fingerprint}" + (f" ({labels})" if labels else ""))


@cli.command()
@click.argument("store_path", type=click.Path(exists=True, file_okay=False))
@click.option("--ttl", "-t", default=DEFAULT_TTL, envvar="SIGNED_STORE_TTL", show_default=True,
              metavar="DURATION", callback=_duration)
@click.option("--access-tracking", default=DEFAULT_ACCESS_TRACKING, envvar="SIGNED_STORE_ACCESS_TRACKING",
              show_default=True, type=click.Choice(ACCESS_TRACKING_MODES))
@click.option("--ledger-path", default=None, envvar="SIGNED_STORE_LEDGER_PATH", type=click.Path(dir_okay=False))
def prune(store_path, ttl, access_tracking, ledger_path):
    """Remove every expired file from STORE_PATH once."""
    store = _open_store(store_path, ttl, access_tracking, ledger_path)
    try:
        removed = store.prune()
    except StorageError as e:
        raise click.ClickException(f"failed to prune: {e}")
    finally:
        store.close()
    click.echo(f"pruned {removed} file(s)")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
