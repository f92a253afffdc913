"""Removal of uploaded media files that belong to purged database rows.

The janitor only ever works from stored references (file names and paths
read from the database) and never lets a failure escape: a file that cannot
be removed is logged and counted, because by the time the janitor runs the
rows that referenced it are already gone.

Layout under the uploads root::

    profile_images/<file_name>            user_images.file_name
    chat_images/...                       user_message_attachments paths

Attachment paths are stored either as ``/uploads/chat_images/...`` or relative
to ``chat_images``.
"""

import logging
import time
import warnings
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from warden.core.errors import FileSystemWarning
from warden.schemas.integrity import FileSweepSummary

logger = logging.getLogger(__name__)

PROFILE_IMAGES_DIR = "profile_images"
CHAT_IMAGES_DIR = "chat_images"
UPLOADS_URL_PREFIX = "/uploads/"

IMAGE_EXTENSIONS = frozenset(
    {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".avif", ".heic", ".heif"}
)
SWEEP_SAMPLE_LIMIT = 10


@dataclass
class MediaReferences:
    """Stored file references collected before the owning rows are purged."""

    profile_images: list[str] = field(default_factory=list)
    attachment_paths: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.profile_images or self.attachment_paths)


@dataclass
class PurgeSummary:
    deleted: int = 0
    missing: int = 0
    failed: int = 0

    def merge(self, other: "PurgeSummary") -> None:
        self.deleted += other.deleted
        self.missing += other.missing
        self.failed += other.failed


def thumbnail_variants(file_name: str) -> list[str]:
    """Sibling thumbnail names for a profile image: ``a_thumb.jpg``, ``a_thumbnail.jpg``, ``a.thumb.jpg``."""
    path = Path(file_name)
    if not path.suffix:
        return []
    stem, suffix = path.stem, path.suffix
    return [
        str(path.with_name(f"{stem}_thumb{suffix}")),
        str(path.with_name(f"{stem}_thumbnail{suffix}")),
        str(path.with_name(f"{stem}.thumb{suffix}")),
    ]


class FileJanitor:
    """Deletes media files under one uploads root."""

    def __init__(self, uploads_root: Path | str) -> None:
        self.uploads_root = Path(uploads_root).resolve()

    @property
    def profile_images_dir(self) -> Path:
        return self.uploads_root / PROFILE_IMAGES_DIR

    @property
    def chat_images_dir(self) -> Path:
        return self.uploads_root / CHAT_IMAGES_DIR

    # --- Path resolution ---

    def _contained(self, candidate: Path) -> Path | None:
        resolved = candidate.resolve()
        if not resolved.is_relative_to(self.uploads_root):
            logger.warning("Refusing to touch %s: outside uploads root", candidate)
            return None
        return resolved

    def resolve_profile_image(self, file_name: str) -> Path | None:
        if not file_name:
            return None
        return self._contained(self.profile_images_dir / file_name)

    def resolve_attachment(self, stored_path: str) -> Path | None:
        """Map a stored attachment path to a file under the uploads root."""
        if not stored_path:
            return None
        if stored_path.startswith(UPLOADS_URL_PREFIX):
            return self._contained(self.uploads_root / stored_path[len(UPLOADS_URL_PREFIX) :])
        return self._contained(self.chat_images_dir / stored_path.lstrip("/"))

    # --- Deletion ---

    def _remove(self, path: Path | None, summary: PurgeSummary) -> None:
        if path is None:
            summary.failed += 1
            return
        try:
            path.unlink()
        except FileNotFoundError:
            summary.missing += 1
            logger.debug("Already gone: %s", path)
        except OSError as e:
            summary.failed += 1
            message = f"Could not delete {path}: {e}"
            warnings.warn(message, FileSystemWarning, stacklevel=2)
            logger.warning(message)
        else:
            summary.deleted += 1
            logger.info("Deleted media file %s", path)

    def delete_profile_image(self, file_name: str) -> PurgeSummary:
        """Delete a profile image and whichever thumbnail variants exist."""
        summary = PurgeSummary()
        self._remove(self.resolve_profile_image(file_name), summary)
        for variant in thumbnail_variants(file_name):
            path = self.resolve_profile_image(variant)
            if path is not None and path.exists():
                self._remove(path, summary)
        return summary

    def delete_attachment(self, stored_path: str) -> PurgeSummary:
        summary = PurgeSummary()
        self._remove(self.resolve_attachment(stored_path), summary)
        return summary

    def purge(self, references: MediaReferences) -> PurgeSummary:
        """Delete every referenced file. Never raises for individual files."""
        summary = PurgeSummary()
        for file_name in references.profile_images:
            summary.merge(self.delete_profile_image(file_name))
        for stored_path in references.attachment_paths:
            summary.merge(self.delete_attachment(stored_path))

        logger.info(
            "Media purge: %d deleted, %d missing, %d failed",
            summary.deleted,
            summary.missing,
            summary.failed,
        )
        return summary

    # --- Unreferenced file sweep ---

    def sweep_unreferenced(
        self,
        referenced: Iterable[str],
        min_age_seconds: float = 120,
        sample_limit: int = SWEEP_SAMPLE_LIMIT,
    ) -> FileSweepSummary:
        """Delete profile images that no ``user_images`` row references.

        Names are compared case-insensitively. Thumbnail variants of a
        referenced image count as referenced. Files younger than
        ``min_age_seconds`` are left alone since their row may not be
        committed yet.
        """
        keep: set[str] = set()
        for name in referenced:
            if not name:
                continue
            keep.add(name.lower())
            keep.update(variant.lower() for variant in thumbnail_variants(name))

        directory = self.profile_images_dir
        summary = FileSweepSummary(directory=str(directory))
        if not directory.is_dir():
            logger.info("No profile images directory at %s", directory)
            return summary

        now = time.time()
        for path in sorted(directory.iterdir()):
            try:
                stats = path.stat()
            except OSError as e:
                summary.failed += 1
                logger.warning("Could not stat %s: %s", path, e)
                continue

            if not path.is_file() or not _looks_like_user_image(path.name):
                continue
            summary.scanned += 1

            if path.name.lower() in keep:
                continue
            if now - stats.st_mtime < min_age_seconds:
                summary.skipped_recent += 1
                continue

            try:
                path.unlink()
            except OSError as e:
                summary.failed += 1
                warnings.warn(f"Could not delete {path}: {e}", FileSystemWarning, stacklevel=2)
                logger.warning("Could not delete unreferenced file %s: %s", path, e)
                continue

            summary.deleted += 1
            if len(summary.sample) < sample_limit:
                summary.sample.append(path.name)

        logger.info(
            "Unreferenced file sweep: %d scanned, %d deleted, %d recent, %d failed",
            summary.scanned,
            summary.deleted,
            summary.skipped_recent,
            summary.failed,
        )
        return summary


def _looks_like_user_image(file_name: str) -> bool:
    lowered = file_name.lower()
    return lowered.startswith("user_") or Path(lowered).suffix in IMAGE_EXTENSIONS
