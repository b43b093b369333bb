#!/usr/bin/env python3
"""Run the nello adapter against an in-memory state tree.

Configuration comes from ``NELLO_*`` environment variables (see README).
The adapter starts, mirrors all locations, optionally waits for webhook
events, then prints the resulting state tree as JSON.

Examples::

    NELLO_ACCESS_TOKEN=... python scripts/run_adapter.py
    NELLO_ACCESS_TOKEN=... NELLO_URI=http://home.example.com:8080 \\
        python scripts/run_adapter.py --wait 300
    python scripts/run_adapter.py --token CLIENT_ID CLIENT_SECRET
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pynello import NelloAdapter, NelloConfig  # noqa: E402
from pynello.state.memory import MemoryStateTree  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--wait", type=float, default=0.0, help="Seconds to keep running for webhook events")
    parser.add_argument(
        "--token",
        nargs=2,
        metavar=("CLIENT_ID", "CLIENT_SECRET"),
        help="Only request an access token with the given client credentials",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def _dump(tree: MemoryStateTree) -> dict[str, object]:
    return {path: tree.states[path].val for path in sorted(tree.states)}


async def _run(args: argparse.Namespace) -> int:
    config = NelloConfig.from_env()
    tree = MemoryStateTree()
    adapter = NelloAdapter(config, tree)
    tree.listener = adapter.on_state_change

    try:
        if args.token:
            client_id, client_secret = args.token
            await adapter.on_message(
                {
                    "command": "setToken",
                    "from": "cli",
                    "message": {"clientId": client_id, "clientSecret": client_secret},
                }
            )
            print(json.dumps([sent.message for sent in tree.sent], indent=2))
            return 0

        if not await adapter.start():
            return 1
        if args.wait > 0:
            await asyncio.sleep(args.wait)
        print(json.dumps(_dump(tree), indent=2, default=str))
        return 0
    finally:
        await adapter.stop()


def main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
