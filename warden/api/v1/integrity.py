"""Data-integrity endpoints: scan, repair, orphan cleanup and table statistics."""

from fastapi import APIRouter, Query, Request

from warden.core.deps import AdminUser, Capabilities, DBSession, Janitor
from warden.core.rate_limit import DESTRUCTIVE_ACTION_LIMIT, INTEGRITY_SCAN_LIMIT, limiter
from warden.schemas.integrity import (
    IntegrityCheckResponse,
    IntegrityFixResponse,
    OrphanCleanupResponse,
    TableSort,
    TableStatsResponse,
    UserTable,
)
from warden.services.integrity_repairer import IntegrityRepairer
from warden.services.integrity_scanner import IntegrityScanner
from warden.services.orphan_cleanup_service import OrphanCleanupService
from warden.services.table_stats_service import TableStatsService

router = APIRouter()


@router.get(
    "/check",
    response_model=IntegrityCheckResponse,
    summary="Scan for integrity issues",
    description="Run every read-only integrity check over the user graph.",
)
@limiter.limit(INTEGRITY_SCAN_LIMIT)
async def check_integrity(
    request: Request,  # noqa: ARG001  # required by slowapi
    _admin: AdminUser,
    db: DBSession,
    capabilities: Capabilities,
) -> IntegrityCheckResponse:
    report = await IntegrityScanner(db, capabilities).scan()
    return IntegrityCheckResponse(summary=report.summary, issues=report.issues)


@router.post(
    "/fix",
    response_model=IntegrityFixResponse,
    summary="Repair integrity issues",
    description=(
        "Apply the automatic fixes (location mismatches, inverted age preferences, "
        "missing preferences) in one transaction and return the residual report."
    ),
)
@limiter.limit(INTEGRITY_SCAN_LIMIT)
async def fix_integrity(
    request: Request,  # noqa: ARG001  # required by slowapi
    _admin: AdminUser,
    db: DBSession,
    capabilities: Capabilities,
) -> IntegrityFixResponse:
    result = await IntegrityRepairer(db, capabilities).repair()
    report = result.report
    if report.is_clean:
        message = f"Applied {result.fixes.total} fix(es); no issues remain"
    elif not report.issues:
        message = (
            f"Applied {result.fixes.total} fix(es); "
            f"{len(report.summary.skipped_checks)} check(s) could not run"
        )
    else:
        message = (
            f"Applied {result.fixes.total} fix(es); "
            f"{report.summary.total_issues} issue(s) need manual review"
        )
    return IntegrityFixResponse(
        message=message,
        fixes=result.fixes,
        summary=report.summary,
        issues=report.issues,
    )


@router.get(
    "/tables",
    response_model=TableStatsResponse,
    summary="Row counts of user tables",
)
async def table_statistics(
    _admin: AdminUser,
    db: DBSession,
    capabilities: Capabilities,
    tables: list[UserTable] | None = Query(default=None),
    sort: TableSort = TableSort.ROW_COUNT,
) -> TableStatsResponse:
    stats = await TableStatsService(db, capabilities).get_table_statistics(tables, sort)
    return TableStatsResponse(tables=stats)


@router.post(
    "/orphans/cleanup",
    response_model=OrphanCleanupResponse,
    summary="Delete orphaned records",
    description=(
        "Delete rows whose user no longer exists, then remove profile image files "
        "that no row references."
    ),
)
@limiter.limit(DESTRUCTIVE_ACTION_LIMIT)
async def cleanup_orphans(
    request: Request,  # noqa: ARG001  # required by slowapi
    _admin: AdminUser,
    db: DBSession,
    capabilities: Capabilities,
    janitor: Janitor,
) -> OrphanCleanupResponse:
    summary = await OrphanCleanupService(db, capabilities, janitor).cleanup()
    return OrphanCleanupResponse(message="Orphaned records cleanup completed", summary=summary)
