import logging
import uuid
from contextlib import contextmanager

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.services.errors import ConcurrentModification, ValidationError

logger = logging.getLogger(__name__)


def coerce_uuid(value, field: str = "id"):
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}: {value}")


def coerce_uuid_list(values, field: str) -> list[uuid.UUID]:
    """Parse a non-empty list of distinct ids."""
    if not values:
        raise ValidationError(f"{field} must not be empty")
    ids = [coerce_uuid(value, field) for value in values]
    if len(set(ids)) != len(ids):
        raise ValidationError(f"{field} must not contain duplicates")
    return ids


def apply_ordering(query, order_by, order_dir, allowed_columns):
    if order_by not in allowed_columns:
        raise ValidationError(
            f"Invalid order_by. Allowed: {', '.join(sorted(allowed_columns))}"
        )
    column = allowed_columns[order_by]
    if order_dir == "desc":
        return query.order_by(column.desc())
    return query.order_by(column.asc())


def apply_pagination(query, limit, offset):
    return query.limit(limit).offset(offset)


@contextmanager
def unit_of_work(db: Session):
    """Commit everything written inside the block, or nothing.

    A stale optimistic-lock check surfaces as ConcurrentModification.
    """
    try:
        yield db
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        logger.warning("Concurrent modification detected: %s", exc)
        raise ConcurrentModification() from exc
    except Exception:
        db.rollback()
        raise
