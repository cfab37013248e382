"""Command line entry point for the posting engine."""

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from typing import Any
from uuid import UUID

import structlog

from ledger_posting.chart_templates import seed_default_chart
from ledger_posting.config import configure_logging, get_settings
from ledger_posting.errors import PostingEngineError
from ledger_posting.orchestrator import GenerationOptions
from ledger_posting.service import build_service
from ledger_posting.store import (
    ChartOfAccounts,
    create_db_engine,
    create_session_factory,
    create_tables,
)

logger = structlog.get_logger(__name__)


def _print(data: dict[str, Any]) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-posting",
        description="Generate and post ledger entries for financial documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s init-db
  %(prog)s seed-chart 7f0c...                # install the standard chart
  %(prog)s preview 3b1e...                   # generate without posting
  %(prog)s generate 3b1e... --static         # skip AI, static rules only
  %(prog)s generate-pending 7f0c...          # post every pending document
  %(prog)s summary 3b1e...
        """,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the database tables")

    seed = sub.add_parser("seed-chart", help="Install the standard chart of accounts")
    seed.add_argument("tenant_id", type=UUID)

    for name, help_text in (
        ("generate", "Generate and post one document"),
        ("preview", "Generate and validate one document without posting"),
    ):
        command = sub.add_parser(name, help=help_text)
        command.add_argument("document_id", type=UUID)
        command.add_argument("--static", action="store_true", help="Do not call the AI")

    pending = sub.add_parser("generate-pending", help="Post every pending document")
    pending.add_argument("tenant_id", type=UUID)
    pending.add_argument("--static", action="store_true", help="Do not call the AI")

    summary = sub.add_parser("summary", help="Show the stored lines of a document")
    summary.add_argument("document_id", type=UUID)

    return parser


async def main(argv: list[str] | None = None) -> int:
    """Run one command and return the process exit code."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    if args.command in ("init-db", "seed-chart"):
        engine = create_db_engine(settings.database_url)
        create_tables(engine)
        if args.command == "seed-chart":
            chart = ChartOfAccounts(create_session_factory(engine))
            created = seed_default_chart(chart, args.tenant_id)
            _print({"tenant_id": str(args.tenant_id), "created": len(created)})
        return 0

    service = build_service(settings)
    options = GenerationOptions.from_settings(settings)
    if getattr(args, "static", False):
        options = replace(options, prefer_ai=False)

    if args.command == "generate":
        outcome = await service.generate(args.document_id, options)
        _print(outcome.to_dict())
        return 0 if outcome.ok else 1
    if args.command == "preview":
        outcome = await service.preview(args.document_id, options)
        _print(outcome.to_dict())
        return 0 if outcome.ok else 1
    if args.command == "generate-pending":
        batch = await service.generate_pending(args.tenant_id, options)
        _print(batch.to_dict())
        return 0 if batch.failed == 0 else 1

    try:
        _print(service.posting_summary(args.document_id).to_dict())
    except PostingEngineError as e:
        _print({"error": e.to_dict()})
        return 1
    return 0


def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("interrupted")
        sys.exit(130)


if __name__ == "__main__":
    run()
