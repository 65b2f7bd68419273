from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from unitwork.adapters.sqlalchemy import SqlAlchemyTransaction, is_started, startup
from unitwork.app import apply_changeset
from unitwork.config import configure_logging
from unitwork.domain.errors import UnitOfWorkError
from unitwork.ui.changeset import Changeset

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from unitwork.app import ChangesetResult

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Apply batched writes as one unit of work")
    parser.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy database URI (defaults to DATABASE_URI or the local data dir)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    apply = subparsers.add_parser("apply", help="Commit a JSON changeset file")
    apply.add_argument("path", type=Path, help="Path to the changeset file")
    apply.add_argument(
        "--json",
        action="store_true",
        help="Print errors as a JSON error tree instead of indented text",
    )

    subparsers.add_parser("types", help="List entity types and whether they are creatable")
    return parser.parse_args(list(argv))


def _print_result(result: ChangesetResult) -> None:
    for tag, items in result.results.items():
        succeeded = sum(1 for item in items if item.success)
        print(f"{tag}: {succeeded}/{len(items)} succeeded")  # noqa: T201
    for ref, entity in result.refs.items():
        print(f"{ref} -> {entity.entity_type}:{entity.id}")  # noqa: T201


def _print_error(error: UnitOfWorkError, *, as_json: bool) -> None:
    print(error.node.dumps() if as_json else error.render(), file=sys.stderr)  # noqa: T201


def _list_types() -> None:
    with SqlAlchemyTransaction() as transaction:
        schema = transaction.schema
        for entity_type in schema.entity_types:
            flag = "creatable" if schema.is_creatable(entity_type) else "read-only"
            print(f"{entity_type}\t{flag}")  # noqa: T201


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        changeset = (
            Changeset.from_path(parsed_args.path) if parsed_args.command == "apply" else None
        )
    except (OSError, ValueError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if not is_started():
            startup(database_uri=parsed_args.database_uri)
        if changeset is not None:
            _print_result(apply_changeset(changeset))
        elif parsed_args.command == "types":
            _list_types()
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except UnitOfWorkError as exc:
        _print_error(exc, as_json=getattr(parsed_args, "json", False))
        sys.exit(1)
    except ValueError:
        log.exception("Invalid changeset")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error while applying changes")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console-script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
