"""
Command line entry point for leasing port ranges.

Example:
  port-leases allocate 3 --env POSTGRES
  port-leases renew 10000 --seconds 600
  port-leases serve --port 8080

Exit codes: 0 on success, 1 when the window is exhausted or a lease is not
found, 2 on any other allocator error.
"""

import argparse
import logging
import sys

from .constants import DEFAULT_SERVER_PORT
from .errors import ExhaustedError, PortLeaseError
from .functions.allocator import PortAllocator


def format_port_env(prefix: str, base: int, size: int) -> list[str]:
    """
    Render KEY=VALUE lines that hand a leased range to a workload.

    >>> format_port_env("DB", 10000, 2)
    ['DB_PORT_BASE=10000', 'DB_PORT_COUNT=2', 'DB_PORT_0=10000', 'DB_PORT_1=10001']
    """
    prefix = prefix.upper().rstrip("_")
    lines = [f"{prefix}_PORT_BASE={base}", f"{prefix}_PORT_COUNT={size}"]
    lines.extend(f"{prefix}_PORT_{offset}={base + offset}" for offset in range(size))
    return lines


def _cmd_allocate(allocator: PortAllocator, args) -> int:
    record = allocator.allocate_lease(args.size)
    if args.env:
        print("\n".join(format_port_env(args.env, record.base, record.size)))
    else:
        print(record.base)
    return 0


def _cmd_release(allocator: PortAllocator, args) -> int:
    if not allocator.release(args.base):
        print(f"error: no lease at port {args.base}", file=sys.stderr)
        return 1
    return 0


def _cmd_renew(allocator: PortAllocator, args) -> int:
    record = allocator.renew(args.base, lease_seconds=args.seconds)
    if record is None:
        print(f"error: no lease at port {args.base}", file=sys.stderr)
        return 1
    print(record.expires_at)
    return 0


def _cmd_list(allocator: PortAllocator, args) -> int:
    for lease in allocator.leases():
        print(f"{lease.base}\t{lease.size}\t{lease.expires_at}")
    return 0


def _cmd_clear(allocator: PortAllocator, args) -> int:
    print(allocator.clear())
    return 0


def _cmd_serve(allocator: PortAllocator, args) -> int:
    from . import create_app

    create_app(allocator).run(host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="port-leases", description="Lease disjoint port ranges.")
    ap.add_argument("-v", "--verbose", action="store_true", help="log search decisions")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("allocate", help="lease SIZE contiguous ports and print the base port")
    p.add_argument("size", type=int)
    p.add_argument("--env", metavar="PREFIX", help="print PREFIX_PORT_* assignments instead")
    p.set_defaults(func=_cmd_allocate)

    p = sub.add_parser("release", help="drop the lease starting at BASE")
    p.add_argument("base", type=int)
    p.set_defaults(func=_cmd_release)

    p = sub.add_parser("renew", help="extend the lease starting at BASE")
    p.add_argument("base", type=int)
    p.add_argument("--seconds", type=int, default=None)
    p.set_defaults(func=_cmd_renew)

    p = sub.add_parser("list", help="print live leases")
    p.set_defaults(func=_cmd_list)

    p = sub.add_parser("clear", help="drop every lease")
    p.set_defaults(func=_cmd_clear)

    p = sub.add_parser("serve", help="run the HTTP API")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=DEFAULT_SERVER_PORT)
    p.set_defaults(func=_cmd_serve)

    return ap


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(message)s",
        stream=sys.stderr,
    )

    try:
        allocator = PortAllocator.from_env()
        return args.func(allocator, args)
    except ExhaustedError as err:
        print(f"error: {err}", file=sys.stderr)
        return 1
    except PortLeaseError as err:
        print(f"error: {err}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
