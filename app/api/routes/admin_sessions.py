import json

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from app.api.errors import http_error
from app.core import config
from app.core.dependencies import get_db, get_current_admin
from app.core.logging_config import get_logger
from app.models.admin import Admin
from app.repositories.records import AppointmentRepository
from app.schemas.appointment import AppointmentOut, SessionActionOut, VerifySessionRequest
from app.services import session_verification
from app.services.errors import LedgerError

router = APIRouter(prefix="/admin/sessions", tags=["Admin Session Verification"])
logger = get_logger()


def _action_response(result: session_verification.VerificationResult) -> SessionActionOut:
    message = result.message
    if not result.notified:
        message += " (notification could not be sent)"
    return SessionActionOut(
        message=message,
        notified=result.notified,
        session=AppointmentOut.model_validate(result.appointment),
    )


# =====================================================================
# LIST / COUNT / LIVE FEED
# =====================================================================
@router.get("/", response_model=list[AppointmentOut])
def list_sessions(
    status: str = "awaiting_verification",
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    if status not in session_verification.SESSION_FILTERS:
        raise HTTPException(status_code=400, detail=f"Unknown filter '{status}'")
    return session_verification.list_sessions(db, status)


@router.get("/pending-count")
def pending_count(admin: Admin = Depends(get_current_admin), db: Session = Depends(get_db)):
    return {"pending_verifications": session_verification.pending_verification_count(db)}


@router.get("/events")
async def session_events(
    request: Request,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Server-sent change events for coach appointments (empty when Redis is off)."""
    try:
        feed = AppointmentRepository(db).subscribe()
    except RedisError as e:
        logger.warning(f"Session feed unavailable: {e}")
        feed = None

    async def stream():
        if feed is None:
            return
        try:
            while not await request.is_disconnected():
                event = await run_in_threadpool(feed.next_event, config.SSE_HEARTBEAT_SECONDS)
                if event is None:
                    yield ": keepalive\n\n"
                else:
                    yield f"data: {json.dumps(event)}\n\n"
        except RedisError as e:
            # the console's EventSource reconnects on its own
            logger.warning(f"Session feed closed by Redis error: {e}")
        finally:
            feed.close()

    return StreamingResponse(stream(), media_type="text/event-stream")


@router.get("/{appointment_id}", response_model=AppointmentOut)
def get_session(appointment_id: str, admin: Admin = Depends(get_current_admin), db: Session = Depends(get_db)):
    appointment = AppointmentRepository(db).get(appointment_id)
    if not appointment:
        raise HTTPException(status_code=404, detail="Session not found")
    return appointment


# =====================================================================
# VERIFY PROOF
# =====================================================================
@router.post("/{appointment_id}/verify", response_model=SessionActionOut)
def verify_session(
    appointment_id: str,
    data: VerifySessionRequest,
    admin: Admin = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    try:
        result = session_verification.verify(
            db, appointment_id, data.approved, data.notes, verified_by=admin.id
        )
    except LedgerError as e:
        logger.bind(log_type="admin").warning(f"Verification refused | appointment={appointment_id} | {e.message}")
        raise http_error(e)

    decision = "approved" if data.approved else "rejected"
    logger.bind(log_type="admin").info(f"Admin {admin.email} {decision} proof for {appointment_id}")
    return _action_response(result)


# =====================================================================
# RELEASE COACH PAYOUT
# =====================================================================
@router.post("/{appointment_id}/release-payment", response_model=SessionActionOut)
def release_payment(appointment_id: str, admin: Admin = Depends(get_current_admin), db: Session = Depends(get_db)):
    try:
        result = session_verification.release_payment(db, appointment_id, released_by=admin.id)
    except LedgerError as e:
        logger.bind(log_type="admin").warning(f"Payout refused | appointment={appointment_id} | {e.message}")
        raise http_error(e)

    logger.bind(log_type="admin").info(f"Admin {admin.email} released coach payout for {appointment_id}")
    return _action_response(result)
