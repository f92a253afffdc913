"""Tests for the integrity API endpoints.

Covers:
- GET /api/v1/integrity/check
- POST /api/v1/integrity/fix
- GET /api/v1/integrity/tables
- POST /api/v1/integrity/orphans/cleanup

Auth enforcement is tested in test_auth.py.
"""

import os
import time
from collections.abc import Callable
from datetime import date
from pathlib import Path
from typing import Any

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tests.conftest import count_rows
from warden.models import UserAttributes, UserImage, UserPreferences, UserSession

# ---------------------------------------------------------------------------
# GET /api/v1/integrity/check
# ---------------------------------------------------------------------------


class TestCheckIntegrity:
    """Tests for GET /api/v1/integrity/check."""

    async def test_clean_database(self, client: AsyncClient) -> None:
        """A clean database reports no issues."""
        response = await client.get("/api/v1/integrity/check")
        assert response.status_code == 200

        data = response.json()
        assert data["success"] is True
        assert data["is_clean"] is True
        assert data["issues"] == []
        assert data["summary"]["total_issues"] == 0

    async def test_reports_issues(
        self, client: AsyncClient, user_factory: Callable[..., Any]
    ) -> None:
        """Issues and the summary are returned."""
        user = await user_factory(gender="robot", country_id=999)

        response = await client.get("/api/v1/integrity/check")
        assert response.status_code == 200

        data = response.json()
        assert data["is_clean"] is False
        assert data["summary"]["total_issues"] == 2
        assert data["summary"]["high_severity"] == 1
        assert data["summary"]["low_severity"] == 1
        assert data["summary"]["affected_users"] == 1
        assert data["issues"][0] == {
            "type": "orphaned_foreign_key",
            "severity": "high",
            "user_id": user.id,
            "email": user.email,
            "message": "Invalid country_id: 999",
        }

    async def test_does_not_modify_data(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        user_factory: Callable[..., Any],
        row_factory: Callable[..., Any],
    ) -> None:
        """Scanning leaves the data as it was."""
        user = await user_factory()
        await row_factory(UserAttributes, user_id=user.id)

        await client.get("/api/v1/integrity/check")

        assert await count_rows(db_session, UserPreferences) == 0


# ---------------------------------------------------------------------------
# POST /api/v1/integrity/fix
# ---------------------------------------------------------------------------


class TestFixIntegrity:
    """Tests for POST /api/v1/integrity/fix."""

    async def test_applies_fixes(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        user_factory: Callable[..., Any],
        row_factory: Callable[..., Any],
    ) -> None:
        """Fixes are applied and counted in the message."""
        user = await user_factory()
        await row_factory(UserAttributes, user_id=user.id)

        response = await client.post("/api/v1/integrity/fix")
        assert response.status_code == 200

        data = response.json()
        assert data["success"] is True
        assert data["fixes"]["preferences_created"] == 1
        assert data["fixes"]["total"] == 1
        assert data["is_clean"] is True
        assert data["message"] == "Applied 1 fix(es); no issues remain"
        assert await count_rows(db_session, UserPreferences) == 1

    async def test_reports_what_needs_review(
        self, client: AsyncClient, user_factory: Callable[..., Any]
    ) -> None:
        """Issues that cannot be fixed are reported."""
        await user_factory(birthdate=date(2099, 1, 1))

        response = await client.post("/api/v1/integrity/fix")
        assert response.status_code == 200

        data = response.json()
        assert data["fixes"]["total"] == 0
        assert data["message"] == "Applied 0 fix(es); 2 issue(s) need manual review"
        assert {i["type"] for i in data["issues"]} == {"invalid_date", "invalid_age"}


# ---------------------------------------------------------------------------
# GET /api/v1/integrity/tables
# ---------------------------------------------------------------------------


class TestTableStatistics:
    """Tests for GET /api/v1/integrity/tables."""

    async def test_all_tables(self, client: AsyncClient, user_factory: Callable[..., Any]) -> None:
        """Every user table is listed by default."""
        await user_factory()

        response = await client.get("/api/v1/integrity/tables")
        assert response.status_code == 200

        tables = response.json()["tables"]
        assert tables[0] == {"table": "users", "row_count": 1}
        assert len(tables) == 20

    async def test_selected_tables_sorted_by_name(self, client: AsyncClient) -> None:
        """Selected tables come back sorted by name."""
        response = await client.get(
            "/api/v1/integrity/tables",
            params={"tables": ["users", "user_images"], "sort": "table_name"},
        )
        assert response.status_code == 200
        assert [t["table"] for t in response.json()["tables"]] == ["user_images", "users"]

    async def test_unknown_table_rejected(self, client: AsyncClient) -> None:
        """A table outside the allowlist is rejected with 422."""
        response = await client.get(
            "/api/v1/integrity/tables", params={"tables": ["users; DROP TABLE users"]}
        )
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# POST /api/v1/integrity/orphans/cleanup
# ---------------------------------------------------------------------------


class TestOrphanCleanup:
    """Tests for POST /api/v1/integrity/orphans/cleanup."""

    async def test_cleanup(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        user_factory: Callable[..., Any],
        row_factory: Callable[..., Any],
        media_file: Callable[..., Path],
    ) -> None:
        """Orphaned rows and stray images are removed and summarised."""
        user = await user_factory()
        await row_factory(UserSession, user_id=user.id, session_token="live")
        await row_factory(UserSession, user_id=321, session_token="stale")
        await row_factory(UserImage, user_id=user.id, file_name="user_live.jpg")
        live = media_file("profile_images/user_live.jpg")
        stray = media_file("profile_images/user_gone.jpg")
        past = time.time() - 3600
        for path in (live, stray):
            os.utime(path, (past, past))

        response = await client.post("/api/v1/integrity/orphans/cleanup")
        assert response.status_code == 200

        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Orphaned records cleanup completed"
        assert data["summary"]["total_deleted"] == 1
        assert data["summary"]["files"]["deleted"] == 1
        assert data["summary"]["files"]["sample"] == ["user_gone.jpg"]
        assert await count_rows(db_session, UserSession) == 1
        assert live.exists()
        assert not stray.exists()
