"""Scan the user graph for integrity issues and optionally repair them.

Prints the report to stdout; logs go to stderr. Exits 0 when the database is
clean (after repair, with ``--fix``) and 1 when issues remain or a check
could not run.

Usage:
    python -m scripts.check_integrity
    python -m scripts.check_integrity --fix
"""

import argparse
import asyncio
import logging
import sys
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from warden.core.capabilities import detect_capabilities
from warden.core.config import settings
from warden.core.database import async_session_maker, engine
from warden.core.errors import TransactionFailure
from warden.core.logging_config import setup_logging
from warden.services.integrity_report import render_fixes, render_report
from warden.services.integrity_repairer import IntegrityRepairer
from warden.services.integrity_scanner import IntegrityScanner

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Check the user tables for corruption.",
    )
    parser.add_argument(
        "--fix",
        action="store_true",
        help="Apply the automatic fixes, then report what remains.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log every check at debug level.",
    )
    return parser.parse_args(argv)


async def run(session: AsyncSession, fix: bool = False, today: date | None = None) -> tuple[str, int]:
    """Return the rendered output and the process exit code."""
    capabilities = await detect_capabilities(session)

    if fix:
        result = await IntegrityRepairer(session, capabilities).repair(today)
        report = result.report
        output = "\n\n".join(
            [render_fixes(result.fixes), render_report(report, title="REMAINING ISSUES")]
        )
    else:
        report = await IntegrityScanner(session, capabilities).scan(today)
        output = render_report(report)

    return output, 0 if report.is_clean else 1


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(debug=args.verbose or settings.debug, json_format=False)

    try:
        async with async_session_maker() as session:
            output, code = await run(session, fix=args.fix)
    except TransactionFailure as e:
        logger.error("Repair aborted: %s", e.message)
        return 2
    finally:
        await engine.dispose()

    print(output)
    return code


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
