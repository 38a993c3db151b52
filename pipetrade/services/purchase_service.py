"""
Purchase Service: requisitions and purchase orders.

- PR: DRAFT -> PENDING_APPROVAL -> APPROVED -> PO_CREATED
- PO: DRAFT -> OPEN -> PARTIALLY_RECEIVED -> FULLY_RECEIVED -> CLOSED
- PO amendment keeps po_no, bumps version and cancels the source
"""
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from pipetrade.core.permissions import AccessChecker
from pipetrade.models.document_sequence import DocumentType
from pipetrade.models.master import Vendor
from pipetrade.models.purchase import (
    PurchaseRequisition, PurchaseRequisitionItem, RequisitionStatus,
    PurchaseOrder, PurchaseOrderItem, POStatus,
    GoodsReceiptNote, GRNItem,
)
from pipetrade.models.sales import Quotation, SalesOrder
from pipetrade.models.user import User
from pipetrade.schemas.purchase import (
    PurchaseRequisitionCreate, PurchaseRequisitionStatusUpdate,
    PurchaseOrderCreate, PurchaseOrderAmend, PurchaseOrderUpdate, POItemCreate,
    POVarianceReport,
)
from pipetrade.services.business_rules import (
    line_amount, money, po_variances, requires_approval, to_decimal,
)
from pipetrade.services.document_sequence_service import DocumentSequenceService
from pipetrade.services.state_machine import requisition_machine, po_machine

logger = logging.getLogger(__name__)

# PO statuses in which the order can no longer be deleted
UNDELETABLE_PO_STATUSES = [
    POStatus.OPEN.value,
    POStatus.PARTIALLY_RECEIVED.value,
    POStatus.FULLY_RECEIVED.value,
    POStatus.CLOSED.value,
]

# Once goods are in, the GRNs pin the version they were received against
AMENDABLE_PO_STATUSES = [POStatus.DRAFT.value, POStatus.OPEN.value]


def _po_items(items: List[POItemCreate]) -> List[PurchaseOrderItem]:
    return [
        PurchaseOrderItem(
            s_no=index,
            product=item.product,
            material=item.material,
            additional_spec=item.additional_spec,
            size_label=item.size_label,
            quantity=to_decimal(item.quantity),
            unit_rate=to_decimal(item.unit_rate),
            amount=line_amount(item.quantity, item.unit_rate),
            delivery_date=item.delivery_date,
        )
        for index, item in enumerate(items, start=1)
    ]


def _line_key(line) -> Tuple[str, str, str]:
    return (
        (line.product or "").strip().lower(),
        (line.material or "").strip().lower(),
        (line.size_label or "").strip().lower(),
    )


class PurchaseService:
    """Service for purchase requisitions and purchase orders."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.numbers = DocumentSequenceService(db)

    # ==================== Purchase Requisitions ====================

    async def list_requisitions(
        self,
        status_filter: Optional[str] = None,
        sales_order_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[PurchaseRequisition], int]:
        query = select(PurchaseRequisition)
        if status_filter:
            query = query.where(PurchaseRequisition.status == status_filter)
        if sales_order_id:
            query = query.where(PurchaseRequisition.sales_order_id == sales_order_id)

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(PurchaseRequisition.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_requisition(self, pr_id: uuid.UUID) -> PurchaseRequisition:
        requisition = await self.db.get(PurchaseRequisition, pr_id)
        if not requisition:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Purchase requisition not found")
        return requisition

    async def create_requisition(self, data: PurchaseRequisitionCreate, user: User) -> PurchaseRequisition:
        if data.sales_order_id and not await self.db.get(SalesOrder, data.sales_order_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sales order not found")

        requisition = PurchaseRequisition(
            pr_no=await self.numbers.get_next_number(DocumentType.PURCHASE_REQUISITION),
            sales_order_id=data.sales_order_id,
            required_by=data.required_by,
            remarks=data.remarks,
            status=RequisitionStatus.DRAFT.value,
            is_auto_generated=False,
            requested_by_id=user.id,
            items=[
                PurchaseRequisitionItem(
                    s_no=index,
                    product=item.product,
                    material=item.material,
                    additional_spec=item.additional_spec,
                    size_label=item.size_label,
                    quantity=to_decimal(item.quantity),
                    uom=item.uom,
                    remarks=item.remarks,
                )
                for index, item in enumerate(data.items, start=1)
            ],
        )
        self.db.add(requisition)
        await self.db.commit()
        await self.db.refresh(requisition)
        logger.info("Created purchase requisition %s", requisition.pr_no)
        return requisition

    async def update_requisition_status(
        self,
        pr_id: uuid.UUID,
        data: PurchaseRequisitionStatusUpdate,
        access: AccessChecker,
    ) -> PurchaseRequisition:
        """
        Move a requisition through its workflow.

        Submitting needs write access; approving or rejecting needs
        approve access and stamps the approver.
        """
        new_status = data.status.value
        if new_status == RequisitionStatus.PO_CREATED.value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="PO_CREATED is set when a purchase order is raised against the requisition"
            )

        decision = new_status in (RequisitionStatus.APPROVED.value, RequisitionStatus.REJECTED.value)
        access.check("purchaseRequisition", "approve" if decision else "write")

        requisition = await self.get_requisition(pr_id)
        requisition_machine.validate_transition(requisition.status, new_status)
        previous = requisition.status
        requisition.status = new_status

        if decision:
            requisition.approved_by_id = access.user.id
            requisition.approval_date = datetime.now(timezone.utc)
            requisition.approval_remarks = data.remarks

        await self.db.commit()
        await self.db.refresh(requisition)
        logger.info("Purchase requisition %s: %s -> %s", requisition.pr_no, previous, new_status)
        return requisition

    # ==================== Purchase Orders ====================

    async def list_purchase_orders(
        self,
        status_filter: Optional[str] = None,
        vendor_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[PurchaseOrder], int]:
        query = select(PurchaseOrder)
        if status_filter:
            query = query.where(PurchaseOrder.status == status_filter)
        if vendor_id:
            query = query.where(PurchaseOrder.vendor_id == vendor_id)

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(PurchaseOrder.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_purchase_order(self, po_id: uuid.UUID) -> PurchaseOrder:
        po = await self.db.get(PurchaseOrder, po_id)
        if not po:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Purchase order not found")
        return po

    async def received_quantities(self, po: PurchaseOrder) -> Tuple[Dict[uuid.UUID, Decimal], Decimal]:
        """
        Quantity received so far against a PO.

        Returns per-item totals (GRN lines matched on product, material and
        size) and the overall total across all GRNs of the PO.
        """
        result = await self.db.execute(
            select(GRNItem)
            .join(GoodsReceiptNote, GRNItem.grn_id == GoodsReceiptNote.id)
            .where(GoodsReceiptNote.po_id == po.id)
        )
        grn_lines = result.scalars().all()

        by_key: Dict[Tuple[str, str, str], Decimal] = {}
        overall = Decimal("0")
        for line in grn_lines:
            qty = to_decimal(line.received_qty_mtr)
            by_key[_line_key(line)] = by_key.get(_line_key(line), Decimal("0")) + qty
            overall += qty

        per_item = {item.id: by_key.get(_line_key(item), Decimal("0")) for item in po.items}
        return per_item, overall

    async def create_purchase_order(self, data: PurchaseOrderCreate, user: User) -> PurchaseOrder:
        vendor = await self.db.get(Vendor, data.vendor_id)
        if not vendor:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vendor not found")
        if not vendor.is_approved:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f'Vendor "{vendor.name}" is not approved. Approve the vendor before raising a purchase order.'
            )

        requisition = None
        if data.pr_id:
            requisition = await self.get_requisition(data.pr_id)
            if requisition.status != RequisitionStatus.APPROVED.value:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Purchase requisition {requisition.pr_no} is {requisition.status}; only APPROVED requisitions can be ordered"
                )
        if data.sales_order_id and not await self.db.get(SalesOrder, data.sales_order_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sales order not found")

        items = _po_items(data.items)
        po = PurchaseOrder(
            po_no=await self.numbers.get_next_number(DocumentType.PURCHASE_ORDER),
            version=1,
            vendor_id=vendor.id,
            pr_id=data.pr_id,
            sales_order_id=data.sales_order_id or (requisition.sales_order_id if requisition else None),
            delivery_date=data.delivery_date,
            payment_terms=data.payment_terms,
            remarks=data.remarks,
            status=POStatus.DRAFT.value,
            total_amount=money(sum((i.amount for i in items), Decimal("0"))),
            created_by_id=user.id,
            items=items,
        )
        self.db.add(po)

        if requisition is not None:
            requisition_machine.validate_transition(requisition.status, RequisitionStatus.PO_CREATED.value)
            requisition.status = RequisitionStatus.PO_CREATED.value
            logger.info("Purchase requisition %s -> PO_CREATED", requisition.pr_no)

        await self.db.commit()
        await self.db.refresh(po)
        logger.info("Created purchase order %s for %s (total %s)", po.po_no, vendor.name, po.total_amount)
        return po

    async def update_purchase_order(
        self,
        po_id: uuid.UUID,
        data: PurchaseOrderUpdate,
        access: AccessChecker,
    ) -> PurchaseOrder:
        po = await self.get_purchase_order(po_id)
        update_data = data.model_dump(exclude_unset=True)

        new_status = update_data.pop("status", None)
        releasing = (
            new_status is not None
            and po.status == POStatus.DRAFT.value
            and POStatus(new_status).value == POStatus.OPEN.value
        )
        # Releasing a PO at or above the threshold is an approval; anything else is an edit
        if releasing and requires_approval("purchaseOrder", po.total_amount):
            access.check("purchaseOrder", "approve")
        else:
            access.check("purchaseOrder", "write")

        if new_status is not None:
            new_status = POStatus(new_status).value
            po_machine.validate_transition(po.status, new_status)

            if releasing:
                po.approved_by_id = access.user.id
                po.approval_date = datetime.now(timezone.utc)

            if new_status != po.status:
                logger.info(
                    "PO %s v%d: %s", po.po_no, po.version,
                    po_machine.get_transition_action(po.status, new_status)
                )
            po.status = new_status

        for field, value in update_data.items():
            setattr(po, field, value)

        await self.db.commit()
        await self.db.refresh(po)
        return po

    async def amend_purchase_order(
        self,
        po_id: uuid.UUID,
        data: PurchaseOrderAmend,
        user: User,
    ) -> PurchaseOrder:
        """Issue the next version of a PO with new lines; the source is cancelled."""
        source = await self.get_purchase_order(po_id)
        if source.status not in AMENDABLE_PO_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"PO in {source.status} status cannot be amended. Allowed: {', '.join(AMENDABLE_PO_STATUSES)}"
            )

        max_version = (await self.db.execute(
            select(func.max(PurchaseOrder.version)).where(PurchaseOrder.po_no == source.po_no)
        )).scalar() or source.version

        items = _po_items(data.items)
        amendment = PurchaseOrder(
            po_no=source.po_no,
            version=max_version + 1,
            parent_po_id=source.id,
            change_reason=data.change_reason,
            vendor_id=source.vendor_id,
            pr_id=source.pr_id,
            sales_order_id=source.sales_order_id,
            delivery_date=data.delivery_date or source.delivery_date,
            payment_terms=data.payment_terms if data.payment_terms is not None else source.payment_terms,
            remarks=data.remarks if data.remarks is not None else source.remarks,
            status=POStatus.DRAFT.value,
            total_amount=money(sum((i.amount for i in items), Decimal("0"))),
            created_by_id=user.id,
            items=items,
        )
        self.db.add(amendment)

        previous = source.status
        po_machine.validate_transition(previous, POStatus.CANCELLED.value)
        source.status = POStatus.CANCELLED.value

        await self.db.commit()
        await self.db.refresh(amendment)
        logger.info(
            "PO %s amended to v%d (%s); v%d %s -> CANCELLED",
            source.po_no, amendment.version, data.change_reason, source.version, previous
        )
        return amendment

    async def variance_report(self, po_id: uuid.UUID) -> POVarianceReport:
        """
        Compare a PO with the quotation its sales order was won on.

        A PO with no sales order, or an order raised on a customer PO alone,
        has nothing to compare against and reports no variances.
        """
        po = await self.get_purchase_order(po_id)
        report = POVarianceReport(po_no=po.po_no, version=po.version)

        sales_order = await self.db.get(SalesOrder, po.sales_order_id) if po.sales_order_id else None
        if not sales_order or not sales_order.quotation_id:
            return report
        quotation = await self.db.get(Quotation, sales_order.quotation_id)
        if not quotation:
            return report

        result = po_variances(
            quotation, sorted(po.items, key=lambda item: item.s_no), po.total_amount
        )
        if result["requires_approval"]:
            logger.warning(
                "PO %s v%d differs from quotation %s: %d variance(s) need approval",
                po.po_no, po.version, quotation.quotation_no, len(result["items"])
            )
        return POVarianceReport(
            po_no=po.po_no,
            version=po.version,
            quotation_id=quotation.id,
            quotation_no=quotation.quotation_no,
            **result,
        )

    async def delete_purchase_order(self, po_id: uuid.UUID) -> None:
        po = await self.get_purchase_order(po_id)
        if po.status in UNDELETABLE_PO_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"PO in {po.status} status cannot be deleted"
            )

        grn_count = (await self.db.execute(
            select(func.count(GoodsReceiptNote.id)).where(GoodsReceiptNote.po_id == po.id)
        )).scalar() or 0
        if grn_count:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="PO has goods receipts and cannot be deleted"
            )

        amendments = (await self.db.execute(
            select(func.count(PurchaseOrder.id)).where(PurchaseOrder.parent_po_id == po.id)
        )).scalar() or 0
        if amendments:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="PO has amendments and cannot be deleted"
            )

        await self.db.delete(po)
        await self.db.commit()
        logger.info("Deleted PO %s v%d", po.po_no, po.version)
