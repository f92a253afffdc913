"""Plain-text rendering of an integrity report for terminals and logs."""

from warden.schemas.integrity import IntegrityReport, Issue, RepairFixes

RULE = "=" * 80


def group_by_user(issues: list[Issue]) -> dict[int | None, list[Issue]]:
    grouped: dict[int | None, list[Issue]] = {}
    for issue in issues:
        grouped.setdefault(issue.user_id, []).append(issue)
    return grouped


def render_report(report: IntegrityReport, title: str = "INTEGRITY SUMMARY") -> str:
    summary = report.summary
    lines = [
        RULE,
        "",
        title,
        "",
        f"  Total Issues Found: {summary.total_issues}",
        f"  High Severity: {summary.high_severity}",
        f"  Medium Severity: {summary.medium_severity}",
        f"  Low Severity: {summary.low_severity}",
    ]

    if summary.skipped_checks:
        lines.append(f"  Skipped Checks: {', '.join(summary.skipped_checks)}")

    if summary.by_type:
        lines += ["", "  Issues by Type:"]
        lines += [f"    {issue_type}: {count}" for issue_type, count in summary.by_type.items()]

    if report.is_clean:
        lines += ["", "  No corruption found. Database is clean."]
    elif not report.issues:
        lines += ["", "  No issues found, but the skipped checks did not run."]
    else:
        lines += ["", f"  Affected Users: {summary.affected_users}", "", "DETAILED ISSUE LIST:", ""]
        for user_id, user_issues in group_by_user(report.issues).items():
            email = next((i.email for i in user_issues if i.email), None) or "N/A"
            lines.append(f"  User {user_id} ({email}):")
            lines += [
                f"    [{issue.severity.value.upper()}] {issue.message}" for issue in user_issues
            ]
            lines.append("")

    lines.append(RULE)
    return "\n".join(lines)


def render_fixes(fixes: RepairFixes) -> str:
    return "\n".join(
        [
            "APPLIED FIXES",
            "",
            f"  States cleared (country mismatch): {fixes.state_cleared}",
            f"  Cities cleared (state mismatch): {fixes.city_cleared}",
            f"  Age preferences swapped: {fixes.age_preferences_swapped}",
            f"  Default preferences created: {fixes.preferences_created}",
            f"  Total: {fixes.total}",
        ]
    )
