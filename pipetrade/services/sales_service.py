"""
Sales Service: enquiries, quotations and sales orders.

Flow:
    Enquiry (OPEN) -> Quotation (DRAFT -> PENDING_APPROVAL/APPROVED -> SENT -> WON)
                   -> Sales Order (OPEN) -> dispatch

Quotations are revised rather than edited once approved: a revision is a
new DRAFT copy numbered {root}-R{n}. The source stays as it is until the
revision is submitted, then it becomes SUPERSEDED.
"""
import logging
import re
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from pipetrade.config import settings
from pipetrade.models.document_sequence import DocumentType
from pipetrade.models.master import Customer
from pipetrade.models.sales import (
    Enquiry, EnquiryItem, EnquiryStatus,
    Quotation, QuotationItem, QuotationTerm, QuotationStatus,
    SalesOrder, SalesOrderItem, SOStatus,
)
from pipetrade.models.inventory import (
    InventoryStock, StockStatus, StockReservation, ReservationStatus, StockIssue,
)
from pipetrade.models.purchase import PurchaseRequisition, PurchaseOrder
from pipetrade.models.dispatch import PackingList
from pipetrade.models.billing import Invoice
from pipetrade.models.user import User
from pipetrade.schemas.sales import (
    EnquiryCreate, EnquiryUpdate,
    QuotationCreate, QuotationApproval, QuotationRevise, QuotationComparison, RevisionBrief,
    QuotationItemCreate, QuotationTermCreate,
    SalesOrderCreate, SalesOrderUpdate,
)
from pipetrade.services.business_rules import (
    REVISABLE_QUOTATION_STATUSES, ACTIVE_DRAFT_STATUSES,
    line_amount, total_weight_mt, money, requires_approval, revision_changes, to_decimal,
)
from pipetrade.services.document_sequence_service import DocumentSequenceService
from pipetrade.services.state_machine import (
    enquiry_machine, quotation_machine, sales_order_machine,
)

logger = logging.getLogger(__name__)

# Statuses a user may set directly; the rest go through submit/approve/revise
MANUAL_QUOTATION_STATUSES = [
    QuotationStatus.DRAFT.value,
    QuotationStatus.SENT.value,
    QuotationStatus.WON.value,
    QuotationStatus.LOST.value,
    QuotationStatus.CANCELLED.value,
]

# Quotation statuses a sales order can be raised against
ORDERABLE_QUOTATION_STATUSES = [
    QuotationStatus.APPROVED.value,
    QuotationStatus.SENT.value,
]

REVISION_SUFFIX = re.compile(r"-R\d+$")


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _quotation_items(items: List[QuotationItemCreate]) -> List[QuotationItem]:
    return [
        QuotationItem(
            s_no=index,
            product=item.product,
            material=item.material,
            additional_spec=item.additional_spec,
            size_label=item.size_label,
            od=to_decimal(item.od) if item.od is not None else None,
            wt=to_decimal(item.wt) if item.wt is not None else None,
            length=item.length,
            ends=item.ends,
            quantity=to_decimal(item.quantity),
            unit_rate=to_decimal(item.unit_rate),
            amount=line_amount(item.quantity, item.unit_rate),
            delivery=item.delivery,
            remark=item.remark,
            unit_weight=to_decimal(item.unit_weight) if item.unit_weight is not None else None,
            total_weight_mt=total_weight_mt(item.quantity, item.unit_weight),
        )
        for index, item in enumerate(items, start=1)
    ]


def _quotation_terms(terms: List[QuotationTermCreate]) -> List[QuotationTerm]:
    return [
        QuotationTerm(term_no=term.term_no or index, term_name=term.term_name, term_value=term.term_value)
        for index, term in enumerate(terms, start=1)
    ]


class SalesService:
    """Service for the sales side of the document flow."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.numbers = DocumentSequenceService(db)

    async def _require_customer(self, customer_id: uuid.UUID) -> Customer:
        customer = await self.db.get(Customer, customer_id)
        if not customer:
            raise _not_found("Customer")
        return customer

    async def _advance_enquiry(self, enquiry_id: Optional[uuid.UUID], new_status: EnquiryStatus) -> None:
        """Move the source enquiry along when its quotation moves; no-op if not allowed."""
        if not enquiry_id:
            return
        enquiry = await self.db.get(Enquiry, enquiry_id)
        if enquiry and enquiry_machine.can_transition(enquiry.status, new_status.value):
            logger.info(
                "Enquiry %s: %s -> %s", enquiry.enquiry_no, enquiry.status, new_status.value
            )
            enquiry.status = new_status.value

    # ==================== Enquiries ====================

    async def list_enquiries(
        self,
        status_filter: Optional[str] = None,
        customer_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[Enquiry], int]:
        query = select(Enquiry)
        if status_filter:
            query = query.where(Enquiry.status == status_filter)
        if customer_id:
            query = query.where(Enquiry.customer_id == customer_id)

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(Enquiry.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_enquiry(self, enquiry_id: uuid.UUID) -> Enquiry:
        enquiry = await self.db.get(Enquiry, enquiry_id)
        if not enquiry:
            raise _not_found("Enquiry")
        return enquiry

    async def create_enquiry(self, data: EnquiryCreate, user: User) -> Enquiry:
        await self._require_customer(data.customer_id)

        enquiry = Enquiry(
            enquiry_no=await self.numbers.get_next_number(DocumentType.ENQUIRY),
            customer_id=data.customer_id,
            client_inquiry_no=data.client_inquiry_no,
            client_inquiry_date=data.client_inquiry_date,
            enquiry_mode=data.enquiry_mode,
            project_name=data.project_name,
            remarks=data.remarks,
            status=EnquiryStatus.OPEN.value,
            created_by_id=user.id,
            items=[
                EnquiryItem(
                    s_no=index,
                    product=item.product,
                    material=item.material,
                    additional_spec=item.additional_spec,
                    size_label=item.size_label,
                    ends=item.ends,
                    quantity=to_decimal(item.quantity) if item.quantity is not None else None,
                    uom=item.uom,
                    remarks=item.remarks,
                )
                for index, item in enumerate(data.items, start=1)
            ],
        )
        self.db.add(enquiry)
        await self.db.commit()
        await self.db.refresh(enquiry)
        logger.info("Created enquiry %s", enquiry.enquiry_no)
        return enquiry

    async def update_enquiry(self, enquiry_id: uuid.UUID, data: EnquiryUpdate) -> Enquiry:
        enquiry = await self.get_enquiry(enquiry_id)
        update_data = data.model_dump(exclude_unset=True)

        new_status = update_data.pop("status", None)
        if new_status is not None:
            new_status = EnquiryStatus(new_status).value
            enquiry_machine.validate_transition(enquiry.status, new_status)
            enquiry.status = new_status

        for field, value in update_data.items():
            setattr(enquiry, field, value)

        await self.db.commit()
        await self.db.refresh(enquiry)
        return enquiry

    # ==================== Quotations ====================

    async def list_quotations(
        self,
        status_filter: Optional[str] = None,
        customer_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[Quotation], int]:
        query = select(Quotation)
        if status_filter:
            query = query.where(Quotation.status == status_filter)
        if customer_id:
            query = query.where(Quotation.customer_id == customer_id)

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(Quotation.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_quotation(self, quotation_id: uuid.UUID) -> Quotation:
        quotation = await self.db.get(Quotation, quotation_id)
        if not quotation:
            raise _not_found("Quotation")
        return quotation

    async def create_quotation(self, data: QuotationCreate, user: User) -> Quotation:
        await self._require_customer(data.customer_id)
        if data.enquiry_id:
            await self.get_enquiry(data.enquiry_id)

        items = _quotation_items(data.items)

        quotation = Quotation(
            quotation_no=await self.numbers.get_next_number(DocumentType.QUOTATION),
            customer_id=data.customer_id,
            enquiry_id=data.enquiry_id,
            quotation_type=data.quotation_type.value,
            currency=data.currency.upper(),
            valid_upto=data.valid_upto,
            payment_terms=data.payment_terms,
            delivery_terms=data.delivery_terms,
            remarks=data.remarks,
            status=QuotationStatus.DRAFT.value,
            version=1,
            prepared_by_id=user.id,
            total_amount=money(sum((i.amount for i in items), Decimal("0"))),
            total_weight_mt=sum((i.total_weight_mt or Decimal("0") for i in items), Decimal("0")),
            items=items,
            terms=_quotation_terms(data.terms),
        )
        self.db.add(quotation)
        await self._advance_enquiry(data.enquiry_id, EnquiryStatus.QUOTATION_PREPARED)

        await self.db.commit()
        await self.db.refresh(quotation)
        logger.info("Created quotation %s (total %s)", quotation.quotation_no, quotation.total_amount)
        return quotation

    async def submit_quotation(self, quotation_id: uuid.UUID, user: User) -> Quotation:
        """
        Submit a draft.

        Quotations below the approval threshold are approved on the spot,
        the rest wait in PENDING_APPROVAL for management.
        """
        quotation = await self.get_quotation(quotation_id)
        if quotation.status != QuotationStatus.DRAFT.value:
            raise _bad_request(
                f"Only DRAFT quotations can be submitted (current status: {quotation.status})"
            )

        if requires_approval("quotation", quotation.total_amount):
            new_status = QuotationStatus.PENDING_APPROVAL.value
        else:
            new_status = QuotationStatus.APPROVED.value

        quotation_machine.validate_transition(quotation.status, new_status)
        action = quotation_machine.get_transition_action(quotation.status, new_status)
        quotation.status = new_status
        if new_status == QuotationStatus.APPROVED.value:
            quotation.approved_by_id = user.id
            quotation.approval_date = datetime.now(timezone.utc)
            quotation.approval_remarks = "Auto-approved: below approval threshold"

        if quotation.parent_quotation_id:
            await self._supersede_parent(quotation)

        await self.db.commit()
        await self.db.refresh(quotation)
        logger.info("Quotation %s: %s", quotation.quotation_no, action)
        return quotation

    async def _supersede_parent(self, revision: Quotation) -> None:
        """A revision leaving DRAFT replaces the quotation it was copied from."""
        parent = await self.db.get(Quotation, revision.parent_quotation_id)
        if not parent:
            return
        if parent.status == QuotationStatus.WON.value:
            raise _bad_request(
                f"Quotation {parent.quotation_no} is already WON; "
                f"revision {revision.quotation_no} cannot be submitted"
            )
        if quotation_machine.can_transition(parent.status, QuotationStatus.SUPERSEDED.value):
            logger.info(
                "Quotation %s: %s -> SUPERSEDED by %s",
                parent.quotation_no, parent.status, revision.quotation_no
            )
            parent.status = QuotationStatus.SUPERSEDED.value

    async def approve_quotation(
        self,
        quotation_id: uuid.UUID,
        approval: QuotationApproval,
        user: User,
    ) -> Quotation:
        quotation = await self.get_quotation(quotation_id)
        if quotation.status != QuotationStatus.PENDING_APPROVAL.value:
            raise _bad_request(
                f"Only quotations pending approval can be approved or rejected "
                f"(current status: {quotation.status})"
            )

        if approval.action == "APPROVE":
            new_status = QuotationStatus.APPROVED.value
        else:
            new_status = QuotationStatus.REJECTED.value
        quotation_machine.validate_transition(quotation.status, new_status)

        quotation.status = new_status
        quotation.approved_by_id = user.id
        quotation.approval_date = datetime.now(timezone.utc)
        quotation.approval_remarks = approval.remarks

        await self.db.commit()
        await self.db.refresh(quotation)
        logger.info("Quotation %s %s by %s", quotation.quotation_no, new_status, user.email)
        return quotation

    async def update_quotation_status(
        self,
        quotation_id: uuid.UUID,
        new_status: str,
        user: User,
    ) -> Quotation:
        """Mark a quotation sent, won, lost or cancelled, or return a rejected one to draft."""
        new_status = new_status.upper()
        if new_status not in MANUAL_QUOTATION_STATUSES:
            raise _bad_request(
                f"Status {new_status} cannot be set directly. "
                f"Allowed: {', '.join(MANUAL_QUOTATION_STATUSES)}"
            )

        quotation = await self.get_quotation(quotation_id)
        quotation_machine.validate_transition(quotation.status, new_status)
        previous = quotation.status
        quotation.status = new_status

        if new_status == QuotationStatus.SENT.value:
            quotation.sent_date = datetime.now(timezone.utc)
        elif new_status == QuotationStatus.WON.value:
            await self._advance_enquiry(quotation.enquiry_id, EnquiryStatus.WON)
        elif new_status == QuotationStatus.LOST.value:
            await self._advance_enquiry(quotation.enquiry_id, EnquiryStatus.LOST)

        await self.db.commit()
        await self.db.refresh(quotation)
        logger.info(
            "Quotation %s: %s -> %s by %s",
            quotation.quotation_no, previous, new_status, user.email
        )
        return quotation

    async def _revision_chain(self, quotation: Quotation) -> List[Quotation]:
        """Every revision sharing the quotation's root number, oldest first."""
        root_no = REVISION_SUFFIX.sub("", quotation.quotation_no)
        result = await self.db.execute(
            select(Quotation).where(
                or_(
                    Quotation.quotation_no == root_no,
                    Quotation.quotation_no.like(f"{root_no}-R%"),
                )
            ).order_by(Quotation.version)
        )
        return list(result.scalars().all())

    async def revise_quotation(
        self,
        quotation_id: uuid.UUID,
        data: QuotationRevise,
        user: User,
    ) -> Quotation:
        """
        Create the next revision of a quotation as a new DRAFT.

        Fields left out of the request are copied from the source. The
        source keeps its status until the revision is submitted.
        """
        source = await self.get_quotation(quotation_id)

        if source.status not in REVISABLE_QUOTATION_STATUSES:
            raise _bad_request(
                f"Cannot revise a quotation with status {source.status}. "
                f"Allowed: {', '.join(REVISABLE_QUOTATION_STATUSES)}"
            )

        chain = await self._revision_chain(source)
        if any(row.status in ACTIVE_DRAFT_STATUSES and row.id != source.id for row in chain):
            raise _bad_request(
                "Cannot create a new revision: a draft or pending approval "
                "revision already exists in this chain"
            )

        max_version = max(row.version for row in chain)
        if max_version - 1 >= settings.MAX_QUOTATION_REVISIONS:
            raise _bad_request(
                f"Maximum {settings.MAX_QUOTATION_REVISIONS} revisions reached for this quotation"
            )

        if data.items is not None:
            items = _quotation_items(data.items)
        else:
            items = [
                QuotationItem(
                    s_no=item.s_no,
                    product=item.product,
                    material=item.material,
                    additional_spec=item.additional_spec,
                    size_label=item.size_label,
                    od=item.od,
                    wt=item.wt,
                    length=item.length,
                    ends=item.ends,
                    quantity=item.quantity,
                    unit_rate=item.unit_rate,
                    amount=item.amount,
                    delivery=item.delivery,
                    remark=item.remark,
                    unit_weight=item.unit_weight,
                    total_weight_mt=item.total_weight_mt,
                )
                for item in source.items
            ]
        if data.terms is not None:
            terms = _quotation_terms(data.terms)
        else:
            terms = [
                QuotationTerm(term_no=term.term_no, term_name=term.term_name, term_value=term.term_value)
                for term in source.terms
            ]
        header = data.model_dump(
            include={"valid_upto", "payment_terms", "delivery_terms", "remarks"}, exclude_unset=True
        )

        root_no = REVISION_SUFFIX.sub("", source.quotation_no)
        new_version = max_version + 1
        revision = Quotation(
            quotation_no=f"{root_no}-R{new_version - 1}",
            customer_id=source.customer_id,
            enquiry_id=source.enquiry_id,
            quotation_type=source.quotation_type,
            currency=source.currency,
            valid_upto=header.get("valid_upto", source.valid_upto),
            payment_terms=header.get("payment_terms", source.payment_terms),
            delivery_terms=header.get("delivery_terms", source.delivery_terms),
            remarks=header.get("remarks", source.remarks),
            status=QuotationStatus.DRAFT.value,
            version=new_version,
            parent_quotation_id=source.id,
            revision_trigger=data.revision_trigger.value,
            revision_sub_reason=data.revision_sub_reason,
            revision_notes=data.revision_notes,
            prepared_by_id=user.id,
            total_amount=money(sum((to_decimal(i.amount) for i in items), Decimal("0"))),
            total_weight_mt=sum((to_decimal(i.total_weight_mt) for i in items), Decimal("0")),
            items=items,
            terms=terms,
        )
        revision.change_snapshot = revision_changes(source, revision)
        self.db.add(revision)

        await self.db.commit()
        await self.db.refresh(revision)
        logger.info(
            "Quotation %s revised as %s (v%d, %s)",
            source.quotation_no, revision.quotation_no, revision.version, revision.revision_trigger
        )
        return revision

    async def compare_revisions(
        self,
        quotation_id: uuid.UUID,
        compare_with: Optional[uuid.UUID] = None,
    ) -> QuotationComparison:
        """Diff a revision against another one in its chain, by default the previous version."""
        quotation = await self.get_quotation(quotation_id)
        chain = await self._revision_chain(quotation)

        if compare_with is None:
            previous = [row for row in chain if row.version < quotation.version]
            if not previous:
                raise _bad_request(
                    f"No previous revision to compare with ({quotation.quotation_no} is the first version)"
                )
            other = previous[-1]
        else:
            other = next((row for row in chain if row.id == compare_with), None)
            if other is None:
                if await self.db.get(Quotation, compare_with) is None:
                    raise _not_found("Comparison quotation")
                raise _bad_request("Can only compare revisions of the same quotation")

        left, right = (other, quotation) if other.version < quotation.version else (quotation, other)
        changes = revision_changes(left, right)

        def brief(row: Quotation) -> RevisionBrief:
            return RevisionBrief(
                id=row.id,
                quotation_no=row.quotation_no,
                version=row.version,
                status=row.status,
                quotation_date=row.quotation_date,
                total_amount=row.total_amount,
                item_count=len(row.items),
            )

        return QuotationComparison(
            left=brief(left),
            right=brief(right),
            header_changes=changes["header_changes"],
            items_added=changes["items_added"],
            items_removed=changes["items_removed"],
            items_modified=changes["items_modified"],
            terms_changes=changes["terms_changes"],
            summary=changes["summary"],
        )

    async def delete_quotation(self, quotation_id: uuid.UUID) -> None:
        quotation = await self.get_quotation(quotation_id)

        if quotation.status == QuotationStatus.APPROVED.value:
            raise _bad_request("Approved quotations cannot be deleted")

        linked_orders = (await self.db.execute(
            select(func.count(SalesOrder.id)).where(SalesOrder.quotation_id == quotation.id)
        )).scalar() or 0
        if linked_orders:
            raise _bad_request("Quotation is linked to a sales order and cannot be deleted")

        revisions = (await self.db.execute(
            select(func.count(Quotation.id)).where(Quotation.parent_quotation_id == quotation.id)
        )).scalar() or 0
        if revisions:
            raise _bad_request("Quotation has revisions and cannot be deleted")

        # Once submitted, a revision is the live copy of its superseded parent
        if quotation.parent_quotation_id:
            parent = await self.db.get(Quotation, quotation.parent_quotation_id)
            if parent and parent.status == QuotationStatus.SUPERSEDED.value:
                raise _bad_request(
                    f"Revision {quotation.quotation_no} has superseded {parent.quotation_no} "
                    f"and cannot be deleted"
                )

        await self.db.delete(quotation)
        await self.db.commit()
        logger.info("Deleted quotation %s", quotation.quotation_no)

    # ==================== Sales Orders ====================

    async def list_sales_orders(
        self,
        status_filter: Optional[str] = None,
        customer_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[SalesOrder], int]:
        query = select(SalesOrder)
        if status_filter:
            query = query.where(SalesOrder.status == status_filter)
        if customer_id:
            query = query.where(SalesOrder.customer_id == customer_id)

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(SalesOrder.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_sales_order(self, sales_order_id: uuid.UUID) -> SalesOrder:
        sales_order = await self.db.get(SalesOrder, sales_order_id)
        if not sales_order:
            raise _not_found("Sales order")
        return sales_order

    async def create_sales_order(self, data: SalesOrderCreate, user: User) -> SalesOrder:
        await self._require_customer(data.customer_id)

        quotation = None
        if data.quotation_id:
            quotation = await self.get_quotation(data.quotation_id)
            if quotation.status not in ORDERABLE_QUOTATION_STATUSES:
                raise _bad_request(
                    f"Sales order can only be created from an APPROVED or SENT quotation "
                    f"(quotation {quotation.quotation_no} is {quotation.status})"
                )

        items = []
        for index, item in enumerate(data.items, start=1):
            items.append(SalesOrderItem(
                s_no=item.s_no or index,
                product=item.product,
                material=item.material,
                additional_spec=item.additional_spec,
                size_label=item.size_label,
                od=to_decimal(item.od) if item.od is not None else None,
                wt=to_decimal(item.wt) if item.wt is not None else None,
                ends=item.ends,
                quantity=to_decimal(item.quantity),
                unit_rate=to_decimal(item.unit_rate),
                amount=line_amount(item.quantity, item.unit_rate),
                delivery_date=item.delivery_date,
                unit_weight=to_decimal(item.unit_weight) if item.unit_weight is not None else None,
                total_weight_mt=total_weight_mt(item.quantity, item.unit_weight),
            ))

        sales_order = SalesOrder(
            so_no=await self.numbers.get_next_number(DocumentType.SALES_ORDER),
            customer_id=data.customer_id,
            quotation_id=data.quotation_id,
            customer_po_no=data.customer_po_no,
            customer_po_date=data.customer_po_date,
            project_name=data.project_name,
            payment_terms=data.payment_terms,
            delivery_terms=data.delivery_terms,
            delivery_schedule=data.delivery_schedule,
            remarks=data.remarks,
            status=SOStatus.OPEN.value,
            po_acceptance_status=data.po_acceptance_status.value,
            total_amount=money(sum((i.amount for i in items), Decimal("0"))),
            created_by_id=user.id,
            items=items,
        )
        self.db.add(sales_order)

        if quotation is not None:
            quotation_machine.validate_transition(quotation.status, QuotationStatus.WON.value)
            quotation.status = QuotationStatus.WON.value
            await self._advance_enquiry(quotation.enquiry_id, EnquiryStatus.WON)
            logger.info("Quotation %s won", quotation.quotation_no)

        await self.db.commit()
        await self.db.refresh(sales_order)
        logger.info("Created sales order %s", sales_order.so_no)
        return sales_order

    async def update_sales_order(self, sales_order_id: uuid.UUID, data: SalesOrderUpdate) -> SalesOrder:
        sales_order = await self.get_sales_order(sales_order_id)
        update_data = data.model_dump(exclude_unset=True)

        new_status = update_data.pop("status", None)
        if new_status is not None:
            new_status = SOStatus(new_status).value
            sales_order_machine.validate_transition(sales_order.status, new_status)
            if new_status != sales_order.status:
                logger.info("Sales order %s: %s -> %s", sales_order.so_no, sales_order.status, new_status)
            sales_order.status = new_status

        acceptance = update_data.pop("po_acceptance_status", None)
        if acceptance is not None:
            sales_order.po_acceptance_status = getattr(acceptance, "value", acceptance)

        for field, value in update_data.items():
            setattr(sales_order, field, value)

        await self.db.commit()
        await self.db.refresh(sales_order)
        return sales_order

    async def delete_sales_order(self, sales_order_id: uuid.UUID) -> None:
        """
        Delete a sales order that has not gone out yet.

        Open reservations are released back to stock first.
        """
        sales_order = await self.get_sales_order(sales_order_id)

        if sales_order.status in (SOStatus.CLOSED.value, SOStatus.FULLY_DISPATCHED.value):
            raise _bad_request(f"Sales order in {sales_order.status} status cannot be deleted")

        for model, label in (
            (PackingList, "packing lists"),
            (Invoice, "invoices"),
            (StockIssue, "stock issues"),
        ):
            count = (await self.db.execute(
                select(func.count(model.id)).where(model.sales_order_id == sales_order.id)
            )).scalar() or 0
            if count:
                raise _bad_request(f"Sales order has {label} and cannot be deleted")

        reservations = (await self.db.execute(
            select(StockReservation).where(StockReservation.sales_order_id == sales_order.id)
        )).scalars().all()
        for reservation in reservations:
            if reservation.status == ReservationStatus.RESERVED.value:
                stock = reservation.inventory_stock
                stock.quantity_mtr = to_decimal(stock.quantity_mtr) + to_decimal(reservation.reserved_qty_mtr)
                stock.pieces = (stock.pieces or 0) + (reservation.reserved_pieces or 0)
                stock.status = StockStatus.ACCEPTED.value
                stock.reserved_for_so_id = None
            await self.db.delete(reservation)

        # Stock can still point at the order after a partial release
        leftover = (await self.db.execute(
            select(InventoryStock).where(InventoryStock.reserved_for_so_id == sales_order.id)
        )).scalars().all()
        for stock in leftover:
            stock.reserved_for_so_id = None

        for model in (PurchaseRequisition, PurchaseOrder):
            linked = (await self.db.execute(
                select(model).where(model.sales_order_id == sales_order.id)
            )).scalars().all()
            for document in linked:
                document.sales_order_id = None

        await self.db.flush()
        await self.db.delete(sales_order)
        await self.db.commit()
        logger.info("Deleted sales order %s, released %d reservation(s)", sales_order.so_no, len(reservations))
