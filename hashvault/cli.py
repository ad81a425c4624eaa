from __future__ import annotations

import sys
import argparse
import json as _json
import getpass as _getpass

from typing import Any, List, Optional

from hashvault.codec import codec_names
from hashvault.constants import DEFAULT_CODEC, ARGON_TIME_COST, ARGON_MEMORY_COST_KIB, ARGON_PARALLELISM
from hashvault.encryption import KDFParams
from hashvault.errors import VaultError, NotFound, NoKey, DecryptionError
from hashvault.hashutil import is_fingerprint
from hashvault.store import ObjectStore, open_store


def _open(
    root: str,
    *,
    password: Optional[str],
    plain: bool,
    codec: str,
    kdf_params: Optional[KDFParams] = None,
) -> ObjectStore:
    """Open the store at ``root``, prompting for a password unless ``plain``.

    Args:
        root: Directory holding the fragments.
        password: Passphrase; prompted for when None and ``plain`` is False.
        plain: Use an unencrypted store.
        codec: Record codec name.
        kdf_params: Argon2id parameters; must match those used to write.
    """
    if plain:
        if password is not None:
            print("Warning: --password ignored with --plain", file=sys.stderr)
        return open_store(root, None, codec=codec)
    if password is None:
        password = _getpass.getpass("Store password: ")
    return open_store(root, password, codec=codec, kdf_params=kdf_params)


def _check_fingerprint(fp: str) -> None:
    if not is_fingerprint(fp):
        raise ValueError(f"not a fingerprint: {fp!r}")


def cmd_put(store: ObjectStore, source: Optional[str] = None, *, quiet: bool = False) -> str:
    """Save a JSON document and print its root fingerprint.

    Args:
        store: Open object store.
        source: Path to a JSON file; stdin when None or "-".
        quiet: Print only the fingerprint.
    """
    if source is None or source == "-":
        value = _json.load(sys.stdin)
    else:
        with open(source, "r", encoding="utf-8") as fh:
            value = _json.load(fh)
    fp = store.save(value)
    print(fp)
    if not quiet:
        counts = store.stats(fp)
        print(
            f"Stored: {counts['fragments']} fragments "
            f"({counts['object']} object, {counts['array']} array, {counts['native']} native)",
            file=sys.stderr,
        )
    return fp


def cmd_get(store: ObjectStore, fp: str, *, indent: Optional[int] = None, output: Optional[str] = None) -> Any:
    """Load a value and print it as JSON (or write it to ``output``)."""
    _check_fingerprint(fp)
    value = store.load(fp)
    text = _json.dumps(value, indent=indent, ensure_ascii=False)
    if output:
        with open(output, "w", encoding="utf-8") as fh:
            fh.write(text + "\n")
    else:
        print(text)
    return value


def cmd_verify(store: ObjectStore, fp: str) -> bool:
    """Verify every fragment reachable from ``fp``.

    Prints:
        "OK" on success, "FAIL" on a missing, tampered or mismatching fragment.
    """
    _check_fingerprint(fp)
    ok = store.verify(fp)
    print("OK" if ok else "FAIL")
    return ok


def cmd_info(store: ObjectStore, fp: str) -> bool:
    _check_fingerprint(fp)
    counts = store.stats(fp)
    print(f"Root: {fp}")
    print(f"  Codec: {store.codec.name}")
    print(f"  Fragments: {counts['fragments']}")
    print(f"    Objects: {counts['object']}")
    print(f"    Arrays: {counts['array']}")
    print(f"    Natives: {counts['native']}")
    return True


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="hashvault",
        description="Content-addressed, encrypted store for JSON values",
        epilog="Each node of a value is stored once, under the SHA-256 of its encoded record.",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--password", help="Store password (prompted when omitted)")
    common.add_argument("--plain", action="store_true", help="Unencrypted store; no password")
    common.add_argument("--codec", choices=codec_names(), default=DEFAULT_CODEC, help=f"Record codec (default {DEFAULT_CODEC})")
    common.add_argument("--kdf-time", type=int, default=ARGON_TIME_COST, help="Argon2id time cost")
    common.add_argument("--kdf-memory", type=int, default=ARGON_MEMORY_COST_KIB, help="Argon2id memory cost in KiB")
    common.add_argument("--kdf-parallelism", type=int, default=ARGON_PARALLELISM, help="Argon2id parallelism")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_put = sub.add_parser("put", parents=[common], help="Store a JSON document")
    ap_put.add_argument("root", help="Store directory")
    ap_put.add_argument("source", nargs="?", help="JSON file (default: stdin)")
    ap_put.add_argument("--quiet", help="print the fingerprint only", action="store_true")

    ap_get = sub.add_parser("get", parents=[common], help="Load a value as JSON")
    ap_get.add_argument("root", help="Store directory")
    ap_get.add_argument("fingerprint", help="Root fingerprint")
    ap_get.add_argument("--indent", type=int, help="Pretty-print with this indent")
    ap_get.add_argument("--output", help="Write JSON to this path instead of stdout")

    ap_verify = sub.add_parser("verify", parents=[common], help="Verify every fragment below a root")
    ap_verify.add_argument("root", help="Store directory")
    ap_verify.add_argument("fingerprint", help="Root fingerprint")

    ap_info = sub.add_parser("info", parents=[common], help="Show fragment counts below a root")
    ap_info.add_argument("root", help="Store directory")
    ap_info.add_argument("fingerprint", help="Root fingerprint")

    args = ap.parse_args(argv)
    try:
        kdf_params = KDFParams(time_cost=args.kdf_time, memory_cost_kib=args.kdf_memory, parallelism=args.kdf_parallelism)
        store = _open(args.root, password=args.password, plain=args.plain, codec=args.codec, kdf_params=kdf_params)
        if args.cmd == "put":
            cmd_put(store, args.source, quiet=args.quiet)
        elif args.cmd == "get":
            cmd_get(store, args.fingerprint, indent=args.indent, output=args.output)
        elif args.cmd == "verify":
            ok = cmd_verify(store, args.fingerprint)
            sys.exit(0 if ok else 1)
        elif args.cmd == "info":
            cmd_info(store, args.fingerprint)
        else:
            raise RuntimeError("Unknown command")
    except NotFound as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except NoKey:
        print("Error: Store is encrypted. Provide --password (or use --plain).", file=sys.stderr)
        sys.exit(2)
    except DecryptionError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Hint: check the password, KDF settings and --plain flag match those used to write.", file=sys.stderr)
        sys.exit(2)
    except (VaultError, ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
