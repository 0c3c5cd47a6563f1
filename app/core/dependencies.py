from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.core.auth_utils import decode_token
from app.models.admin import Admin
from app.repositories.records import AdminRepository

security = HTTPBearer(auto_error=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_token_payload(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return decode_token(credentials.credentials)


def get_current_admin(
    payload: dict = Depends(get_token_payload),
    db: Session = Depends(get_db)
) -> Admin:
    """Re-resolved on every request so a deactivated admin loses access immediately."""
    if payload["role"] != "admin":
        raise HTTPException(status_code=403, detail="Admins only")

    admin = AdminRepository(db).get(payload["sub"])
    if not admin:
        raise HTTPException(status_code=404, detail="Admin not found")

    if not admin.is_active or admin.role != "admin":
        raise HTTPException(
            status_code=403,
            detail="Your admin account is inactive or lacks sufficient privileges."
        )

    return admin


def get_caller_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str | None:
    """End-user id from the bearer token, or None when there is no valid one."""
    if credentials is None:
        return None
    try:
        payload = decode_token(credentials.credentials)
    except HTTPException:
        return None
    if payload["role"] != "user":
        return None
    return payload["sub"]
