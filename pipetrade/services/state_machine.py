"""
Document Status State Machines

This module is the SINGLE SOURCE OF TRUTH for document status transitions.
Every status change on a business document goes through the machine for
that document type before the row is written.

Each machine is a lookup table: current_status -> [allowed next statuses].
Statuses with no entry (or an empty list) are terminal.
"""

from typing import Dict, List, Optional, Tuple

from fastapi import HTTPException, status

from pipetrade.models.sales import EnquiryStatus, QuotationStatus, SOStatus
from pipetrade.models.purchase import RequisitionStatus, POStatus
from pipetrade.models.inventory import StockStatus
from pipetrade.models.quality_control import NCRStatus
from pipetrade.models.billing import InvoiceStatus


class StateMachine:
    """Transition table for one document type."""

    def __init__(
        self,
        document: str,
        transitions: Dict[str, List[str]],
        actions: Optional[Dict[Tuple[str, str], str]] = None,
    ):
        self.document = document
        self.transitions = transitions
        self.actions = actions or {}

    def can_transition(self, current_status: str, new_status: str) -> bool:
        """Check if a transition is allowed."""
        return new_status in self.transitions.get(current_status, [])

    def get_allowed_transitions(self, current_status: str) -> List[str]:
        """Get list of statuses that can be transitioned to from current status."""
        return list(self.transitions.get(current_status, []))

    def is_terminal(self, current_status: str) -> bool:
        return not self.transitions.get(current_status)

    def get_transition_action(self, current_status: str, new_status: str) -> str:
        """Get human-readable action name for a transition."""
        return self.actions.get((current_status, new_status), f"{current_status} -> {new_status}")

    def validate_transition(self, current_status: str, new_status: str) -> None:
        """
        Validate a status transition. Raises HTTPException(400) if invalid.

        Use this in services before changing status.
        """
        if current_status == new_status:
            return  # No change, always allowed

        if not self.can_transition(current_status, new_status):
            if self.is_terminal(current_status):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"{self.document} in '{current_status}' status cannot be modified. "
                           f"{current_status} is a terminal state."
                )
            allowed = self.get_allowed_transitions(current_status)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status transition from {current_status} to {new_status}. "
                       f"Allowed transitions: {', '.join(allowed)}"
            )


# =============================================================================
# TRANSITION RULES
# =============================================================================

ENQUIRY_TRANSITIONS: Dict[str, List[str]] = {
    EnquiryStatus.OPEN: [
        EnquiryStatus.QUOTATION_PREPARED,
        EnquiryStatus.LOST,
        EnquiryStatus.CANCELLED,
    ],
    EnquiryStatus.QUOTATION_PREPARED: [
        EnquiryStatus.WON,
        EnquiryStatus.LOST,
        EnquiryStatus.CANCELLED,
    ],
    EnquiryStatus.WON: [],
    EnquiryStatus.LOST: [],
    EnquiryStatus.CANCELLED: [],
}

QUOTATION_TRANSITIONS: Dict[str, List[str]] = {
    QuotationStatus.DRAFT: [
        QuotationStatus.PENDING_APPROVAL,   # Submit for approval
        QuotationStatus.APPROVED,           # Below approval threshold
        QuotationStatus.CANCELLED,
    ],
    QuotationStatus.PENDING_APPROVAL: [
        QuotationStatus.APPROVED,
        QuotationStatus.REJECTED,
    ],
    QuotationStatus.APPROVED: [
        QuotationStatus.SENT,
        QuotationStatus.EXPIRED,            # Lapsed before it was sent
        QuotationStatus.REVISED,
        QuotationStatus.SUPERSEDED,
        QuotationStatus.CANCELLED,
    ],
    QuotationStatus.SENT: [
        QuotationStatus.WON,
        QuotationStatus.LOST,
        QuotationStatus.EXPIRED,
        QuotationStatus.REVISED,
        QuotationStatus.SUPERSEDED,
    ],
    QuotationStatus.REJECTED: [
        QuotationStatus.DRAFT,              # Rework and resubmit
        QuotationStatus.REVISED,
        QuotationStatus.SUPERSEDED,
    ],
    QuotationStatus.EXPIRED: [QuotationStatus.REVISED, QuotationStatus.SUPERSEDED],
    QuotationStatus.LOST: [QuotationStatus.REVISED, QuotationStatus.SUPERSEDED],
    QuotationStatus.REVISED: [QuotationStatus.SUPERSEDED],
    QuotationStatus.WON: [],
    QuotationStatus.SUPERSEDED: [],
    QuotationStatus.CANCELLED: [],
}

SALES_ORDER_TRANSITIONS: Dict[str, List[str]] = {
    SOStatus.OPEN: [
        SOStatus.PARTIALLY_DISPATCHED,
        SOStatus.FULLY_DISPATCHED,
        SOStatus.CLOSED,
        SOStatus.CANCELLED,
    ],
    SOStatus.PARTIALLY_DISPATCHED: [
        SOStatus.FULLY_DISPATCHED,
        SOStatus.CLOSED,
    ],
    SOStatus.FULLY_DISPATCHED: [SOStatus.CLOSED],
    SOStatus.CLOSED: [],
    SOStatus.CANCELLED: [],
}

REQUISITION_TRANSITIONS: Dict[str, List[str]] = {
    RequisitionStatus.DRAFT: [RequisitionStatus.PENDING_APPROVAL],
    RequisitionStatus.PENDING_APPROVAL: [
        RequisitionStatus.APPROVED,
        RequisitionStatus.REJECTED,
    ],
    RequisitionStatus.REJECTED: [RequisitionStatus.DRAFT],
    RequisitionStatus.APPROVED: [RequisitionStatus.PO_CREATED],
    RequisitionStatus.PO_CREATED: [],
}

PO_TRANSITIONS: Dict[str, List[str]] = {
    POStatus.DRAFT: [
        POStatus.OPEN,                  # Release to vendor
        POStatus.CANCELLED,
    ],
    POStatus.OPEN: [
        POStatus.PARTIALLY_RECEIVED,
        POStatus.FULLY_RECEIVED,
        POStatus.CLOSED,
        POStatus.CANCELLED,
    ],
    POStatus.PARTIALLY_RECEIVED: [
        POStatus.PARTIALLY_RECEIVED,    # Receive more goods
        POStatus.FULLY_RECEIVED,
        POStatus.CLOSED,                # Short-close
    ],
    POStatus.FULLY_RECEIVED: [POStatus.CLOSED],
    POStatus.CLOSED: [],
    POStatus.CANCELLED: [],
}

NCR_TRANSITIONS: Dict[str, List[str]] = {
    NCRStatus.OPEN: [NCRStatus.UNDER_INVESTIGATION],
    NCRStatus.UNDER_INVESTIGATION: [NCRStatus.CORRECTIVE_ACTION_IN_PROGRESS],
    NCRStatus.CORRECTIVE_ACTION_IN_PROGRESS: [NCRStatus.CLOSED],
    NCRStatus.CLOSED: [NCRStatus.VERIFIED],
    NCRStatus.VERIFIED: [],
}

INVOICE_TRANSITIONS: Dict[str, List[str]] = {
    InvoiceStatus.DRAFT: [InvoiceStatus.SENT, InvoiceStatus.CANCELLED],
    InvoiceStatus.SENT: [
        InvoiceStatus.PARTIALLY_PAID,
        InvoiceStatus.PAID,
        InvoiceStatus.CANCELLED,
    ],
    InvoiceStatus.PARTIALLY_PAID: [InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID],
    InvoiceStatus.PAID: [],
    InvoiceStatus.CANCELLED: [],
}

STOCK_TRANSITIONS: Dict[str, List[str]] = {
    StockStatus.UNDER_INSPECTION: [
        StockStatus.ACCEPTED,
        StockStatus.REJECTED,
        StockStatus.HOLD,
    ],
    StockStatus.HOLD: [StockStatus.ACCEPTED, StockStatus.REJECTED],
    StockStatus.ACCEPTED: [
        StockStatus.RESERVED,
        StockStatus.DISPATCHED,
        StockStatus.HOLD,
        StockStatus.REJECTED,
    ],
    StockStatus.RESERVED: [StockStatus.DISPATCHED, StockStatus.ACCEPTED],
    StockStatus.REJECTED: [],
    StockStatus.DISPATCHED: [],
}

QUOTATION_ACTIONS: Dict[tuple, str] = {
    (QuotationStatus.DRAFT, QuotationStatus.PENDING_APPROVAL): "Submit for Approval",
    (QuotationStatus.DRAFT, QuotationStatus.APPROVED): "Auto Approve",
    (QuotationStatus.PENDING_APPROVAL, QuotationStatus.APPROVED): "Approve",
    (QuotationStatus.PENDING_APPROVAL, QuotationStatus.REJECTED): "Reject",
    (QuotationStatus.APPROVED, QuotationStatus.SENT): "Send to Customer",
    (QuotationStatus.SENT, QuotationStatus.WON): "Mark Won",
    (QuotationStatus.SENT, QuotationStatus.LOST): "Mark Lost",
}

PO_ACTIONS: Dict[tuple, str] = {
    (POStatus.DRAFT, POStatus.OPEN): "Release to Vendor",
    (POStatus.DRAFT, POStatus.CANCELLED): "Cancel",
    (POStatus.OPEN, POStatus.PARTIALLY_RECEIVED): "Receive Goods",
    (POStatus.OPEN, POStatus.FULLY_RECEIVED): "Receive All Goods",
    (POStatus.PARTIALLY_RECEIVED, POStatus.FULLY_RECEIVED): "Receive Remaining",
    (POStatus.PARTIALLY_RECEIVED, POStatus.CLOSED): "Short Close",
    (POStatus.FULLY_RECEIVED, POStatus.CLOSED): "Close PO",
}


enquiry_machine = StateMachine("Enquiry", ENQUIRY_TRANSITIONS)
quotation_machine = StateMachine("Quotation", QUOTATION_TRANSITIONS, QUOTATION_ACTIONS)
sales_order_machine = StateMachine("Sales order", SALES_ORDER_TRANSITIONS)
requisition_machine = StateMachine("Purchase requisition", REQUISITION_TRANSITIONS)
po_machine = StateMachine("PO", PO_TRANSITIONS, PO_ACTIONS)
ncr_machine = StateMachine("NCR", NCR_TRANSITIONS)
invoice_machine = StateMachine("Invoice", INVOICE_TRANSITIONS)
stock_machine = StateMachine("Stock", STOCK_TRANSITIONS)
