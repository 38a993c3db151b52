"""API endpoints for payment receipts."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from pipetrade.api.deps import DB, require_access
from pipetrade.models.user import User
from pipetrade.schemas.billing import (
    PaymentReceiptCreate, PaymentReceiptResponse, PaymentReceiptCreateResponse,
    PaymentReceiptListResponse,
)
from pipetrade.services.billing_service import BillingService

router = APIRouter()


@router.get("", response_model=PaymentReceiptListResponse)
async def list_payments(
    db: DB,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    invoice_id: Optional[UUID] = None,
    customer_id: Optional[UUID] = None,
    current_user: User = Depends(require_access("payment", "read")),
):
    payments, total = await BillingService(db).list_payments(invoice_id, customer_id, skip, limit)
    return PaymentReceiptListResponse(
        items=[PaymentReceiptResponse.model_validate(p) for p in payments],
        total=total,
        page=(skip // limit) + 1,
        size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("", response_model=PaymentReceiptCreateResponse, status_code=status.HTTP_201_CREATED)
async def record_payment(
    data: PaymentReceiptCreate,
    db: DB,
    current_user: User = Depends(require_access("payment", "write")),
):
    """Record a receipt; the invoice rolls up to PARTIALLY_PAID or PAID."""
    receipt, invoice, paid = await BillingService(db).record_payment(data, current_user)
    response = PaymentReceiptCreateResponse.model_validate(receipt)
    response.invoice_status = invoice.status
    response.total_paid = float(paid)
    return response


@router.get("/{payment_id}", response_model=PaymentReceiptResponse)
async def get_payment(
    payment_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("payment", "read")),
):
    return await BillingService(db).get_payment(payment_id)
