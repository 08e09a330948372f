import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import crypto
from .config import ClientConfig
from .errors import CacheError, TransportError, TrustMismatch, TrustRejected
from .fingerprints import FingerprintStore
from .messages import Event, Role
from .session import CallbackObserver, Connection, _close_writer, establish_session
from .trust import TrustVerifier

"""
run_client.py - command line entry point.

What you can do here:
- listen:  connect, join the channel, print every event until disconnect
- trust:   look at a relay's certificate and (after you say yes) pin it
- forget:  drop a host's pin
- pins:    list pinned hosts with their SHA-256 digests

The channel key comes from NVREMOTE_KEY (never from argv, so it doesn't
end up in shell history or `ps`).
"""

log = logging.getLogger("nvremote")

EXIT_OK = 0
EXIT_UNTRUSTED = 2
EXIT_MISMATCH = 3
EXIT_TRANSPORT = 4


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def print_event(event: Event) -> None:
    print(f"Processed event: {event!r}", flush=True)


def print_certificate(host: str, der: bytes) -> None:
    """Human-readable summary of a certificate we're about to (maybe) pin."""
    print(f"Host:        {host}")
    try:
        info = crypto.describe_certificate(der)
    except ValueError:
        print("Certificate: <could not be parsed>")
        print(f"SHA-256:     {crypto.sha256_digest(der)}")
        return
    print(f"Subject:     {info['subject']}")
    print(f"Issuer:      {info['issuer']}")
    print(f"Valid:       {info['not_before']} .. {info['not_after']}")
    print(f"SHA-256:     {info['sha256']}")


# -------------------------
# Modes
# -------------------------

async def run_listen(cfg: ClientConfig, insecure_skip_verify: bool, timeout: Optional[float]) -> int:
    """Connect, join, and print events until the relay hangs up."""
    if not cfg.key:
        raise SystemExit("NVREMOTE_KEY not set")

    try:
        conn = await Connection.open(
            cfg.host,
            cfg.key,
            cfg.role,
            port=cfg.port,
            fingerprint_path=cfg.fingerprint_path,
            insecure_skip_verify=insecure_skip_verify,
            timeout=timeout,
        )
    except TrustRejected as exc:
        print(f"Server certificate not trusted for host {exc.host}.")
        print(f"SHA-256: {crypto.sha256_digest(exc.certificate)}")
        print(f"Pin:     {exc.fingerprint_hex}")
        print(f"Check it, then run: python -m nvremote.run_client --mode trust --host {exc.host}")
        return EXIT_UNTRUSTED
    except TrustMismatch as exc:
        print(f"Certificate mismatch for host {exc.host}. Refusing to connect.")
        return EXIT_MISMATCH
    except TransportError as exc:
        print(f"Connection failed: {exc}")
        return EXIT_TRANSPORT

    async with conn:
        conn.set_event_observer(CallbackObserver(print_event))
        try:
            await conn.join()
            while await conn.next_event() is not None:
                await asyncio.sleep(cfg.poll_interval)
        except TransportError as exc:
            print(f"Connection lost: {exc}")
            return EXIT_TRANSPORT

    print("Disconnected.")
    return EXIT_OK


async def run_trust(cfg: ClientConfig, assume_yes: bool, timeout: Optional[float]) -> int:
    """
    Fetch the relay's certificate and pin it after confirmation.

    A host that's already pinned is left alone; a mismatching host must be
    forgotten explicitly first (we never overwrite a pin silently).
    """
    store = FingerprintStore.load(cfg.fingerprint_path)
    try:
        _, writer, cert = await establish_session(cfg.host, cfg.port, TrustVerifier(store), timeout)
    except TrustRejected as exc:
        cert = exc.certificate
    except TrustMismatch as exc:
        print(f"Host {exc.host} is pinned to a DIFFERENT certificate.")
        print(f"If you're sure it changed legitimately: --mode forget --host {exc.host}")
        return EXIT_MISMATCH
    except TransportError as exc:
        print(f"Connection failed: {exc}")
        return EXIT_TRANSPORT
    else:
        await _close_writer(writer)
        print(f"Host {cfg.host} is already pinned to this certificate.")
        return EXIT_OK

    print_certificate(cfg.host, cert)
    if not assume_yes:
        answer = input(f"Pin this certificate for {cfg.host}? [y/N] ").strip().lower()
        if answer not in ("y", "yes"):
            print("Not pinned.")
            return EXIT_UNTRUSTED

    store.add(cfg.host, cert)
    store.save(cfg.fingerprint_path)
    print(f"Pinned {cfg.host} in {cfg.fingerprint_path}")
    return EXIT_OK


def run_forget(cfg: ClientConfig) -> int:
    store = FingerprintStore.load(cfg.fingerprint_path)
    if not store.remove(cfg.host):
        print(f"No pin for {cfg.host}.")
        return EXIT_OK
    store.save(cfg.fingerprint_path)
    print(f"Forgot {cfg.host}.")
    return EXIT_OK


def run_pins(cfg: ClientConfig) -> int:
    store = FingerprintStore.load(cfg.fingerprint_path)
    if not len(store):
        print("No pinned hosts.")
    for host in store.hosts():
        try:
            print(f"{host}  {crypto.sha256_digest(store.get(host))}")
        except CacheError as exc:
            print(f"{host}  <{exc}>")
    return EXIT_OK


# -------------------------
# Argument parsing
# -------------------------

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Quick examples:
      Listen:  NVREMOTE_KEY=secret python -m nvremote.run_client --mode listen
      Trust:   python -m nvremote.run_client --mode trust --host relay.example
      Forget:  python -m nvremote.run_client --mode forget --host relay.example
      Pins:    python -m nvremote.run_client --mode pins
    """
    p = argparse.ArgumentParser(prog="nvremote")
    p.add_argument("--mode", choices=["listen", "trust", "forget", "pins"], required=True)
    p.add_argument("--host")
    p.add_argument("--port", type=int)
    p.add_argument("--role", choices=[r.value for r in Role])
    p.add_argument("--fingerprints", help="Pin cache path")
    p.add_argument("--timeout", type=float, help="Connect timeout in seconds")
    p.add_argument("--log-level")
    p.add_argument("--yes", action="store_true", help="Pin without asking (trust mode)")
    p.add_argument(
        "--insecure-skip-verify",
        action="store_true",
        help="DEBUG ONLY: accept any certificate (listen mode)",
    )
    return p.parse_args(argv)


def build_config(args: argparse.Namespace) -> ClientConfig:
    """Environment first, then CLI flags on top."""
    cfg = ClientConfig.from_env()
    if args.host:
        cfg.host = args.host
    if args.port:
        cfg.port = args.port
    if args.role:
        cfg.role = Role(args.role)
    if args.fingerprints:
        cfg.fingerprint_path = Path(args.fingerprints).expanduser()
    if args.log_level:
        cfg.log_level = args.log_level.upper()
    return cfg


# -------------------------
# Main entrypoint
# -------------------------

def main(argv: Optional[Sequence[str]] = None) -> None:
    """Dispatch into the chosen mode; keep top-level code very small."""
    args = parse_args(argv)
    try:
        cfg = build_config(args)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    setup_logging(cfg.log_level)
    log.debug("Using pin cache %s", cfg.fingerprint_path)

    if args.mode in ("trust", "forget") and not args.host:
        raise SystemExit(f"--host is required for {args.mode} mode")

    try:
        if args.mode == "listen":
            code = asyncio.run(run_listen(cfg, args.insecure_skip_verify, args.timeout))
        elif args.mode == "trust":
            code = asyncio.run(run_trust(cfg, args.yes, args.timeout))
        elif args.mode == "forget":
            code = run_forget(cfg)
        else:
            code = run_pins(cfg)
    except CacheError as exc:
        print(f"Pin cache error: {exc}", file=sys.stderr)
        code = 1
    except KeyboardInterrupt:
        code = 130
    raise SystemExit(code)


if __name__ == "__main__":
    main()
