import json

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.errors import http_error
from app.core.dependencies import get_db, get_caller_id
from app.core.logging_config import get_logger
from app.schemas.payment import CallbackAck, StatusQuery, StatusQueryOut
from app.services.errors import InvalidCallback, LedgerError
from app.services.payment_callback import process_callback
from app.services.status_query import StatusQueryError, check_payment_status

router = APIRouter(prefix="/payments", tags=["Payments"])
logger = get_logger()


async def _read_payload(request: Request) -> dict:
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/x-www-form-urlencoded") or content_type.startswith("multipart/form-data"):
        form = await request.form()
        return dict(form)

    body = await request.body()
    if not body:
        raise InvalidCallback("Empty request body")
    try:
        payload = json.loads(body)
    except ValueError:
        raise InvalidCallback("Invalid JSON body")
    if not isinstance(payload, dict):
        raise InvalidCallback("Callback body must be an object")
    return payload


# =====================================================================
# BILLPLZ CALLBACK (gateway -> us)
# =====================================================================
@router.post("/billplz/callback", response_model=CallbackAck)
async def billplz_callback(request: Request, db: Session = Depends(get_db)):
    try:
        payload = await _read_payload(request)
        message = await run_in_threadpool(process_callback, db, payload)
        return CallbackAck(success=True, message=message)

    except LedgerError as e:
        raise http_error(e)

    except Exception as e:
        # 5xx makes the gateway retry; processing is replay-safe
        logger.bind(log_type="payment").exception(f"Error processing Billplz callback: {e}")
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})


# =====================================================================
# MANUAL STATUS CHECK (app -> us)
# =====================================================================
@router.post("/status", response_model=StatusQueryOut)
def payment_status(
    data: StatusQuery | None = None,
    caller_id: str | None = Depends(get_caller_id),
    db: Session = Depends(get_db),
):
    data = data or StatusQuery()
    try:
        return check_payment_status(db, caller_id, data.booking_id, data.booking_type)

    except StatusQueryError as e:
        raise HTTPException(status_code=e.status_code, detail={"code": e.code, "message": e.message})

    except Exception as e:
        logger.bind(log_type="payment").exception(f"Error checking payment status: {e}")
        raise HTTPException(status_code=500, detail={"code": "internal", "message": str(e)})
