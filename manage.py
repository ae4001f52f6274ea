from __future__ import annotations

import argparse
from pathlib import Path

from alembic import command
from alembic.config import Config


def get_alembic_config() -> Config:
    here = Path(__file__).resolve().parent
    cfg = Config(str(here / "alembic.ini"))
    cfg.set_main_option("script_location", str(here / "alembic"))
    return cfg


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="CareKit database migrations"
    )
    subparsers = parser.add_subparsers(dest="command")

    upgrade_parser = subparsers.add_parser(
        "upgrade", help="Apply migrations (default: head)"
    )
    upgrade_parser.add_argument("revision", nargs="?", default="head")

    downgrade_parser = subparsers.add_parser(
        "downgrade", help="Downgrade to a specific revision"
    )
    downgrade_parser.add_argument("revision", help="Revision id or -1, -2, ...")

    subparsers.add_parser("current", help="Show the applied revision")

    revision_parser = subparsers.add_parser(
        "revision", help="Create new alembic revision"
    )
    revision_parser.add_argument(
        "-m",
        "--message",
        required=True,
        help="Revision message",
    )
    revision_parser.add_argument(
        "--autogenerate",
        action="store_true",
        help="Populate revision with schema diff from models",
    )
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    cfg = get_alembic_config()

    if args.command is None:
        command.upgrade(cfg, "head")
    elif args.command == "upgrade":
        command.upgrade(cfg, args.revision)
    elif args.command == "downgrade":
        command.downgrade(cfg, args.revision)
    elif args.command == "current":
        command.current(cfg, verbose=True)
    elif args.command == "revision":
        command.revision(
            cfg,
            message=args.message,
            autogenerate=args.autogenerate,
        )
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
