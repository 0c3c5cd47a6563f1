"""
Proof-of-session verification and coach payout.

    confirmed -> awaiting_verification   (coach uploads proof, outside this service)
    awaiting_verification -> verified    (admin approves)
    awaiting_verification -> confirmed   (admin rejects, proof cleared)
    verified -> completed                (admin releases payout, once)
"""
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.core.logging_config import get_logger
from app.models.coach_appointment import CoachAppointment
from app.models.enums import AppointmentStatus, NotificationType, VerificationStatus
from app.repositories.records import AppointmentRepository, utcnow
from app.services.errors import NotesRequired, RecordNotFound, StaleRecord, TransitionNotAllowed
from app.services.notifications import emit_best_effort
from app.services.transitions import ensure_transition
from app.utils.money import format_amount, split_fee, to_money

logger = get_logger()

DEFAULT_APPROVAL_NOTE = "Session verified and approved"

SESSION_FILTERS = {
    "awaiting_verification": [AppointmentStatus.AWAITING_VERIFICATION],
    "verified": [AppointmentStatus.VERIFIED],
    "completed": [AppointmentStatus.COMPLETED],
    "all": [
        AppointmentStatus.AWAITING_VERIFICATION,
        AppointmentStatus.VERIFIED,
        AppointmentStatus.COMPLETED,
    ],
}


@dataclass
class VerificationResult:
    appointment: CoachAppointment
    message: str
    notified: bool


def _load(repo: AppointmentRepository, appointment_id: str) -> CoachAppointment:
    appointment = repo.get(appointment_id)
    if appointment is None:
        raise RecordNotFound("Session not found")
    return appointment


# =====================================================================
# VERIFY / REJECT PROOF
# =====================================================================
def verify(
    db: Session,
    appointment_id: str,
    approved: bool,
    notes: str | None = None,
    verified_by: str = "admin",
) -> VerificationResult:
    notes = (notes or "").strip()
    if not approved and not notes:
        raise NotesRequired("Please provide a reason for rejection")

    repo = AppointmentRepository(db)
    session = _load(repo, appointment_id)

    target = AppointmentStatus.VERIFIED if approved else AppointmentStatus.CONFIRMED
    ensure_transition("appointment", session.status, target)

    if approved:
        changed = repo.conditional_update(
            appointment_id,
            {"status": AppointmentStatus.AWAITING_VERIFICATION},
            verification_status=VerificationStatus.VERIFIED,
            verified_at=utcnow(),
            verified_by=verified_by,
            verification_notes=notes or DEFAULT_APPROVAL_NOTE,
            status=AppointmentStatus.VERIFIED,
        )
    else:
        changed = repo.conditional_update(
            appointment_id,
            {"status": AppointmentStatus.AWAITING_VERIFICATION},
            verification_status=VerificationStatus.REJECTED,
            verified_at=utcnow(),
            verified_by=verified_by,
            verification_notes=notes,
            status=AppointmentStatus.CONFIRMED,
            proof_photo_base64=None,
            proof_uploaded_at=None,
            proof_notes=None,
        )

    if not changed:
        raise StaleRecord("Session was changed by someone else. Reload and try again.")

    log = logger.bind(log_type="booking")
    amount = session.charged_amount

    if approved:
        log.info(f"Session proof approved | appointment={appointment_id} | by={verified_by}")
        notified = emit_best_effort(
            db,
            session.coach_id,
            NotificationType.PAYMENT,
            "Training Proof Approved!",
            f"Your training proof for the session with {session.student_name} on {session.date} "
            f"has been verified and approved. Payment will be released soon!",
            metadata={
                "appointmentId": session.id,
                "action": "view_booking",
                "status": VerificationStatus.VERIFIED.value,
                "amount": str(to_money(amount)) if amount is not None else None,
            },
        )
        message = (
            f"Session verified. Payment of {format_amount(amount)} "
            f"can now be released to {session.coach_name}."
        )
    else:
        log.info(f"Session proof rejected | appointment={appointment_id} | by={verified_by} | reason={notes}")
        notified = emit_best_effort(
            db,
            session.coach_id,
            NotificationType.SYSTEM,
            "Training Proof Rejected",
            f"Your training proof for the session with {session.student_name} on {session.date} "
            f"was not approved. Reason: {notes}. Please upload a new proof photo.",
            metadata={
                "appointmentId": session.id,
                "action": "upload_proof",
                "status": VerificationStatus.REJECTED.value,
                "rejectionReason": notes,
            },
        )
        message = "Session rejected. Coach will be notified to upload a new proof photo."

    return VerificationResult(session, message, notified)


# =====================================================================
# RELEASE PAYOUT
# =====================================================================
def release_payment(db: Session, appointment_id: str, released_by: str = "admin") -> VerificationResult:
    repo = AppointmentRepository(db)
    session = _load(repo, appointment_id)

    if session.payment_released_to_coach:
        raise TransitionNotAllowed("Payment has already been released to the coach")
    ensure_transition("appointment", session.status, AppointmentStatus.COMPLETED)

    amount = session.charged_amount
    if amount is None or to_money(amount) <= 0:
        raise TransitionNotAllowed("Session has no payment amount to release")

    platform_fee, coach_earnings = split_fee(amount)

    # one statement guards both the status and the payout flag
    if not repo.conditional_update(
        appointment_id,
        {
            "status": AppointmentStatus.VERIFIED,
            "payment_released_to_coach": False,
        },
        status=AppointmentStatus.COMPLETED,
        payment_released_to_coach=True,
        payment_released_at=utcnow(),
        coach_earnings=coach_earnings,
        platform_fee=platform_fee,
    ):
        raise StaleRecord("Payment was already released or the session changed. Reload and try again.")

    logger.bind(log_type="payment").info(
        f"Coach payout released | appointment={appointment_id} | coach={session.coach_id} "
        f"| earnings={coach_earnings} | fee={platform_fee} | by={released_by}"
    )

    notified = emit_best_effort(
        db,
        session.coach_id,
        NotificationType.PAYMENT,
        "Payment Released!",
        f"Payment for your session with {session.student_name} on {session.date} "
        f"has been released. Amount: {format_amount(coach_earnings)}",
        metadata={
            "appointmentId": session.id,
            "action": "view_booking",
            "status": AppointmentStatus.COMPLETED.value,
            "amount": str(coach_earnings),
        },
    )

    message = (
        f"Payment released. Coach earnings: {format_amount(coach_earnings)}, "
        f"platform fee: {format_amount(platform_fee)}"
    )
    return VerificationResult(session, message, notified)


# =====================================================================
# ADMIN VIEWS
# =====================================================================
def list_sessions(db: Session, status_filter: str = "awaiting_verification") -> list[CoachAppointment]:
    statuses = SESSION_FILTERS.get(status_filter, SESSION_FILTERS["awaiting_verification"])
    sessions = (
        db.query(CoachAppointment)
        .filter(
            CoachAppointment.status.in_([s.value for s in statuses]),
            CoachAppointment.proof_photo_base64.isnot(None),
        )
        .all()
    )
    # newest proof first; sessions without an upload time go last
    return sorted(
        sessions,
        key=lambda s: s.proof_uploaded_at.timestamp() if s.proof_uploaded_at else float("-inf"),
        reverse=True,
    )


def pending_verification_count(db: Session) -> int:
    return (
        db.query(CoachAppointment)
        .filter(CoachAppointment.status == AppointmentStatus.AWAITING_VERIFICATION.value)
        .count()
    )
