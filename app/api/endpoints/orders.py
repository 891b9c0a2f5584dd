from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.crud import crud_order
from app.db.session import get_db
from app.schemas.order import OrderPublic, OrderStatusResponse

router = APIRouter()

@router.get("/{session_id}", response_model=OrderStatusResponse)
def read_order_status(session_id: str, db: Session = Depends(get_db)):
    """
    Order status for the checkout success page, polled until the eSIM is ready.
    - pending: the webhook has not created the order yet
    - processing: order exists, no QR code yet
    - ready: QR code available
    """
    db_order = crud_order.get_order_by_session(db, session_id=session_id)
    if not db_order:
        return OrderStatusResponse(order=None, status="pending")

    return OrderStatusResponse(
        order=OrderPublic.model_validate(db_order),
        status="ready" if db_order.esim_qr_code else "processing",
    )
