"""Read-only comparisons over a document's immutable version history.

Versions carry only upload metadata (hash, size, uploader, time), so every
figure here is derived from those columns at read time.
"""

import logging
import math
from collections import Counter
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db import as_utc, utcnow
from app.models.document_control import DocumentVersion
from app.services.common import coerce_uuid
from app.services.document_lifecycle import DocumentLifecycle
from app.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_DAY = timedelta(days=1)

FREQUENCY_WINDOWS = {"last_7_days": 7, "last_30_days": 30, "last_90_days": 90}


def _get_version(db: Session, version_id, field: str) -> DocumentVersion:
    version = db.get(DocumentVersion, coerce_uuid(version_id, field))
    if not version:
        raise NotFoundError("Document version not found")
    return version


def _elapsed(older: DocumentVersion, newer: DocumentVersion) -> timedelta:
    return as_utc(newer.created_at) - as_utc(older.created_at)


def _average_gap_days(newest_first: list[DocumentVersion]) -> float:
    if len(newest_first) < 2:
        return 0.0
    total = _elapsed(newest_first[-1], newest_first[0])
    return total / _DAY / (len(newest_first) - 1)


class VersionHistory:
    @staticmethod
    def compare_versions(
        db: Session, document_id: str, version_id: str, other_version_id: str
    ) -> dict:
        """Compare two versions of one document, oldest first.

        Argument order does not matter; the lower version number is always
        reported as ``old_version``.
        """
        document = DocumentLifecycle.get(db, document_id)
        first = _get_version(db, version_id, "version_id")
        second = _get_version(db, other_version_id, "other_version_id")
        if first.document_id != document.id or second.document_id != document.id:
            raise ValidationError(
                "Versions must belong to the same document",
                {"document_id": str(document.id)},
            )
        old, new = sorted((first, second), key=lambda v: v.version_number)
        elapsed = _elapsed(old, new)
        size_change = new.file_size - old.file_size
        return {
            "old_version": old,
            "new_version": new,
            "version_diff": new.version_number - old.version_number,
            "seconds_between": elapsed.total_seconds(),
            "days_between": math.floor(elapsed / _DAY),
            "size_change": size_change,
            "size_change_percent": (
                size_change / old.file_size * 100 if old.file_size else 0.0
            ),
            "hash_changed": old.file_hash != new.file_hash,
            "uploaded_by": {
                "old": old.uploaded_by,
                "new": new.uploaded_by,
                "same_user": old.uploaded_by == new.uploaded_by,
            },
        }

    @staticmethod
    def version_history_summary(db: Session, document_id: str) -> dict:
        versions = DocumentLifecycle.list_versions(db, document_id)
        by_user = Counter(str(v.uploaded_by) for v in versions)
        first = versions[-1] if versions else None
        latest = versions[0] if versions else None
        return {
            "total_versions": len(versions),
            "current_version": latest.version_number if latest else None,
            "first_version": first,
            "latest_version": latest,
            "average_days_between_versions": _average_gap_days(versions),
            "total_size_change": (
                latest.file_size - first.file_size if versions else 0
            ),
            "unique_contributors": len(by_user),
            "versions_by_user": dict(by_user),
        }

    @staticmethod
    def find_version_by_hash(
        db: Session, document_id: str, file_hash: str
    ) -> DocumentVersion | None:
        document = DocumentLifecycle.get(db, document_id)
        stmt = (
            select(DocumentVersion)
            .where(
                DocumentVersion.document_id == document.id,
                DocumentVersion.file_hash == file_hash,
            )
            .order_by(DocumentVersion.version_number.desc())
            .limit(1)
        )
        return db.scalars(stmt).first()

    @staticmethod
    def duplicate_check(db: Session, document_id: str, file_hash: str) -> dict:
        """Whether this content was already uploaded as a version."""
        if not file_hash:
            raise ValidationError("file_hash is required")
        existing = VersionHistory.find_version_by_hash(db, document_id, file_hash)
        return {"is_duplicate": existing is not None, "existing_version": existing}

    @staticmethod
    def version_timeline(db: Session, document_id: str) -> list[dict]:
        """Newest first, each entry measured against the version before it."""
        document = DocumentLifecycle.get(db, document_id)
        versions = DocumentLifecycle.list_versions(db, document.id)
        timeline = []
        for index, version in enumerate(versions):
            previous = versions[index + 1] if index + 1 < len(versions) else None
            entry = {
                "version": version,
                "is_current_version": version.id == document.current_version_id,
                "previous_version_id": None,
                "days_since_previous": None,
                "size_change": None,
            }
            if previous is not None:
                entry["previous_version_id"] = previous.id
                entry["days_since_previous"] = math.floor(
                    _elapsed(previous, version) / _DAY
                )
                entry["size_change"] = version.file_size - previous.file_size
            timeline.append(entry)
        return timeline

    @staticmethod
    def version_statistics(
        db: Session, document_id: str, now: datetime | None = None
    ) -> dict:
        now = as_utc(now or utcnow())
        versions = DocumentLifecycle.list_versions(db, document_id)
        frequency = {
            label: sum(
                1
                for v in versions
                if as_utc(v.created_at) >= now - timedelta(days=days)
            )
            for label, days in FREQUENCY_WINDOWS.items()
        }
        if not versions:
            return {
                "total_versions": 0,
                "average_file_size": 0.0,
                "min_file_size": 0,
                "max_file_size": 0,
                "average_days_between_versions": 0.0,
                "most_active_contributor": None,
                "version_frequency": frequency,
            }

        sizes = [v.file_size for v in versions]
        # Ties go to whoever uploaded most recently.
        user_id, count = Counter(v.uploaded_by for v in versions).most_common(1)[0]
        return {
            "total_versions": len(versions),
            "average_file_size": sum(sizes) / len(sizes),
            "min_file_size": min(sizes),
            "max_file_size": max(sizes),
            "average_days_between_versions": _average_gap_days(versions),
            "most_active_contributor": {"user_id": user_id, "version_count": count},
            "version_frequency": frequency,
        }


version_history = VersionHistory()
