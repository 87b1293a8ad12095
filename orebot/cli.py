from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from orebot.config import default_settings, load_settings, save_settings
from orebot.domain import OreBotError
from orebot.infra import get_logger
from orebot.runtime.app import App


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="orebot", description="ORE round deploy bot")
    ap.add_argument("-c", "--config", default="config.json", help="path to the JSON config document")
    sub = ap.add_subparsers(dest="command", required=True)
    sub.add_parser("run", help="monitor rounds and deploy when the timing gate opens")
    sub.add_parser("balance", help="wallet and claimable balances")
    sub.add_parser("claim", help="claim SOL and ORE rewards")
    sub.add_parser("status", help="balance plus current round and miner state")
    sub.add_parser("board", help="current board")
    sub.add_parser("miner", help="miner account")
    init = sub.add_parser("init-config", help="write a default config document")
    init.add_argument("path", nargs="?", default="config.json")
    init.add_argument("--force", action="store_true", help="overwrite an existing file")
    return ap


def _init_config(path: str, force: bool) -> int:
    log = get_logger("orebot")
    target = Path(path)
    if target.exists() and not force:
        log.error("%s already exists; pass --force to overwrite", target)
        return 1
    save_settings(default_settings(), target)
    log.info("wrote default config to %s", target)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "init-config":
        return _init_config(args.path, args.force)

    log = get_logger("orebot")
    try:
        settings = load_settings(args.config)
        app = App(settings)
        handler = getattr(app, args.command)
        asyncio.run(handler())
    except KeyboardInterrupt:
        log.info("interrupted, exiting")
        return 0
    except OreBotError as exc:
        log.error("%s failed: %s", args.command, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
