from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.dependencies import get_db, get_current_admin
from app.core.logging_config import get_logger
from app.models.admin import Admin
from app.services import escrow, session_verification

router = APIRouter(prefix="/admin-panel", tags=["Admin Panel"])
logger = get_logger()


# ==================================================
# DASHBOARD COUNTERS
# ==================================================
@router.get("/dashboard")
def dashboard(admin: Admin = Depends(get_current_admin), db: Session = Depends(get_db)):
    logger.bind(log_type="admin").info(f"Admin {admin.email} opened dashboard")
    return {
        "admin": {"name": admin.name, "role": admin.role, "permissions": admin.permissions or []},
        "pending_verifications": session_verification.pending_verification_count(db),
        "payments": escrow.payment_summary(db),
    }
