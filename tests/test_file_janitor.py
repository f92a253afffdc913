"""Tests for media file removal and the unreferenced image sweep."""

import os
import time
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest

from warden.core.errors import FileSystemWarning
from warden.services.file_janitor import FileJanitor, MediaReferences, thumbnail_variants


def _age(path: Path, seconds: float = 3600) -> None:
    past = time.time() - seconds
    os.utime(path, (past, past))


class TestThumbnailVariants:
    """Tests for thumbnail_variants()."""

    def test_variants(self) -> None:
        """All three sibling thumbnail names are produced."""
        assert thumbnail_variants("user_1_a.jpg") == [
            "user_1_a_thumb.jpg",
            "user_1_a_thumbnail.jpg",
            "user_1_a.thumb.jpg",
        ]

    def test_no_extension_has_no_variants(self) -> None:
        """A name without an extension has no variants."""
        assert thumbnail_variants("README") == []


class TestPathResolution:
    """Tests for resolving stored references under the uploads root."""

    def test_attachment_url_form(self, janitor: FileJanitor, uploads_root: Path) -> None:
        """/uploads/... paths resolve against the uploads root."""
        path = janitor.resolve_attachment("/uploads/chat_images/a.jpg")
        assert path == (uploads_root / "chat_images" / "a.jpg").resolve()

    def test_attachment_relative_form(self, janitor: FileJanitor, uploads_root: Path) -> None:
        """Relative attachment paths resolve against the uploads root."""
        path = janitor.resolve_attachment("2026/a.jpg")
        assert path == (uploads_root / "chat_images" / "2026" / "a.jpg").resolve()

    @pytest.mark.parametrize("stored", ["../../etc/passwd", "/uploads/../../secret.txt"])
    def test_escape_is_refused(self, janitor: FileJanitor, stored: str) -> None:
        """Attachment paths that leave the uploads root are refused."""
        assert janitor.resolve_attachment(stored) is None

    def test_profile_image_escape_is_refused(self, janitor: FileJanitor) -> None:
        """Profile image names that leave their directory are refused."""
        assert janitor.resolve_profile_image("../../outside.jpg") is None

    def test_empty_is_none(self, janitor: FileJanitor) -> None:
        """Empty references resolve to nothing."""
        assert janitor.resolve_profile_image("") is None
        assert janitor.resolve_attachment("") is None


class TestPurge:
    """Tests for FileJanitor.purge()."""

    def test_deletes_images_thumbnails_and_attachments(
        self, janitor: FileJanitor, media_file: Callable[..., Path]
    ) -> None:
        """Images, their thumbnails and chat attachments are deleted."""
        image = media_file("profile_images/user_1_a.jpg")
        thumb = media_file("profile_images/user_1_a_thumb.jpg")
        attachment = media_file("chat_images/m1.png")
        attachment_thumb = media_file("chat_images/m1_small.png")

        summary = janitor.purge(
            MediaReferences(
                profile_images=["user_1_a.jpg"],
                attachment_paths=["/uploads/chat_images/m1.png", "m1_small.png"],
            )
        )

        assert summary.deleted == 4
        assert summary.failed == 0
        for path in (image, thumb, attachment, attachment_thumb):
            assert not path.exists()

    def test_missing_files_are_counted_not_raised(self, janitor: FileJanitor) -> None:
        """Already-missing files are counted as missing."""
        summary = janitor.purge(MediaReferences(profile_images=["gone.jpg"]))
        assert summary.deleted == 0
        assert summary.missing == 1

    def test_unremovable_file_warns_and_counts(
        self, janitor: FileJanitor, media_file: Callable[..., Path]
    ) -> None:
        """A file that cannot be removed warns and counts as failed."""
        media_file("profile_images/locked.jpg")

        with patch.object(Path, "unlink", side_effect=PermissionError("denied")):
            with pytest.warns(FileSystemWarning):
                summary = janitor.purge(MediaReferences(profile_images=["locked.jpg"]))

        assert summary.failed == 1
        assert summary.deleted == 0

    def test_refused_path_counts_as_failed(self, janitor: FileJanitor) -> None:
        """A refused reference counts as failed."""
        summary = janitor.purge(MediaReferences(attachment_paths=["../../etc/passwd"]))
        assert summary.failed == 1

    def test_empty_references_are_falsy(self) -> None:
        """MediaReferences with nothing in it is falsy."""
        assert not MediaReferences()
        assert MediaReferences(attachment_paths=["a.jpg"])


class TestSweepUnreferenced:
    """Tests for FileJanitor.sweep_unreferenced()."""

    def test_deletes_only_unreferenced_old_images(
        self, janitor: FileJanitor, media_file: Callable[..., Path]
    ) -> None:
        """Only old images that no row references are removed."""
        kept = media_file("profile_images/user_1_a.jpg")
        kept_thumb = media_file("profile_images/user_1_a_thumb.jpg")
        stale = media_file("profile_images/user_2_b.jpg")
        for path in (kept, kept_thumb, stale):
            _age(path)

        summary = janitor.sweep_unreferenced(["user_1_a.jpg"])

        assert kept.exists()
        assert kept_thumb.exists()
        assert not stale.exists()
        assert summary.scanned == 3
        assert summary.deleted == 1
        assert summary.sample == ["user_2_b.jpg"]

    def test_comparison_is_case_insensitive(
        self, janitor: FileJanitor, media_file: Callable[..., Path]
    ) -> None:
        """Referenced names match regardless of case."""
        path = media_file("profile_images/USER_1_A.JPG")
        _age(path)

        summary = janitor.sweep_unreferenced(["user_1_a.jpg"])

        assert path.exists()
        assert summary.deleted == 0

    def test_recent_files_survive_the_grace_period(
        self, janitor: FileJanitor, media_file: Callable[..., Path]
    ) -> None:
        """Files newer than the grace period are kept."""
        fresh = media_file("profile_images/user_3_c.jpg")

        summary = janitor.sweep_unreferenced([], min_age_seconds=120)

        assert fresh.exists()
        assert summary.skipped_recent == 1
        assert summary.deleted == 0

    def test_non_image_files_are_ignored(
        self, janitor: FileJanitor, media_file: Callable[..., Path]
    ) -> None:
        """Files without an image extension are left alone."""
        notes = media_file("profile_images/notes.txt")
        _age(notes)

        summary = janitor.sweep_unreferenced([], min_age_seconds=0)

        assert notes.exists()
        assert summary.scanned == 0

    def test_user_prefix_without_extension_counts_as_image(
        self, janitor: FileJanitor, media_file: Callable[..., Path]
    ) -> None:
        """Extensionless user_ files are treated as images."""
        blob = media_file("profile_images/user_9_blob")
        _age(blob)

        summary = janitor.sweep_unreferenced([])

        assert not blob.exists()
        assert summary.deleted == 1

    def test_sample_is_capped(self, janitor: FileJanitor, media_file: Callable[..., Path]) -> None:
        """The sample of removed names is bounded."""
        for n in range(12):
            _age(media_file(f"profile_images/user_{n:02d}.jpg"))

        summary = janitor.sweep_unreferenced([], sample_limit=10)

        assert summary.deleted == 12
        assert len(summary.sample) == 10

    def test_missing_directory_is_empty_summary(self, tmp_path: Path) -> None:
        """A missing profile directory yields an empty summary."""
        janitor = FileJanitor(tmp_path / "nowhere")
        summary = janitor.sweep_unreferenced([])
        assert summary.scanned == 0
        assert summary.deleted == 0
