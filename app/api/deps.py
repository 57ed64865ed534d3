import uuid

from fastapi import Header, HTTPException, status

from app.db import SessionLocal

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_actor_id(x_actor_id: str | None = Header(default=None)) -> uuid.UUID:
    """Identity of the caller, asserted by the fronting gateway."""
    if not x_actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "unauthorized", "message": "Missing X-Actor-Id header"},
        )
    try:
        return uuid.UUID(x_actor_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "unauthorized", "message": "Invalid X-Actor-Id header"},
        )


__all__ = ["get_actor_id", "get_db"]
