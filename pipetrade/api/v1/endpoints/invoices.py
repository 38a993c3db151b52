"""API endpoints for GST invoices."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from pipetrade.api.deps import DB, require_access
from pipetrade.models.billing import InvoiceStatus
from pipetrade.models.user import User
from pipetrade.schemas.billing import (
    InvoiceCreate, InvoiceUpdate, InvoiceResponse, InvoiceListResponse,
)
from pipetrade.services.billing_service import BillingService

router = APIRouter()


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    db: DB,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    customer_id: Optional[UUID] = None,
    sales_order_id: Optional[UUID] = None,
    current_user: User = Depends(require_access("invoice", "read")),
):
    invoices, total = await BillingService(db).list_invoices(
        customer_id, sales_order_id, status_filter.value if status_filter else None, skip, limit
    )
    return InvoiceListResponse(
        items=[InvoiceResponse.model_validate(inv) for inv in invoices],
        total=total,
        page=(skip // limit) + 1,
        size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    data: InvoiceCreate,
    db: DB,
    current_user: User = Depends(require_access("invoice", "write")),
):
    """
    Create an invoice.

    Totals, GST split and amount in words are computed server-side.
    """
    return await BillingService(db).create_invoice(data, current_user)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("invoice", "read")),
):
    return await BillingService(db).get_invoice(invoice_id)


@router.patch("/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    invoice_id: UUID,
    data: InvoiceUpdate,
    db: DB,
    current_user: User = Depends(require_access("invoice", "write")),
):
    return await BillingService(db).update_invoice(invoice_id, data)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(
    invoice_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("invoice", "delete")),
):
    """Invoices are never deleted; this always answers 400."""
    await BillingService(db).delete_invoice(invoice_id)
