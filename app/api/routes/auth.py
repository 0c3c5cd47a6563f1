from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.dependencies import get_db, get_current_admin
from app.core.jwt import create_access_token
from app.core.logging_config import get_logger
from app.core.security import verify_password
from app.models.admin import Admin
from app.repositories.records import AdminRepository
from app.schemas.admin import AdminLogin, AdminOut

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = get_logger()


# =====================================================================
#                           ADMIN LOGIN
# =====================================================================
@router.post("/admin/login")
def admin_login(data: AdminLogin, db: Session = Depends(get_db)):
    admin = AdminRepository(db).get_by_email(data.email)

    if not admin or not verify_password(data.password, admin.password_hash):
        logger.bind(log_type="admin").warning(f"Failed admin login | email={data.email}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not admin.is_active or admin.role != "admin":
        raise HTTPException(
            status_code=403,
            detail="Your admin account is inactive or lacks sufficient privileges."
        )

    token = create_access_token({"sub": admin.id, "role": "admin"})
    logger.bind(log_type="admin").info(f"Admin logged in | {admin.email}")

    return {
        "access_token": token,
        "role": "admin",
        "token_type": "bearer",
        "admin": AdminOut.model_validate(admin),
    }


# =====================================================================
#                           CURRENT ADMIN
# =====================================================================
@router.get("/admin/me", response_model=AdminOut)
def admin_me(admin: Admin = Depends(get_current_admin)):
    return admin
