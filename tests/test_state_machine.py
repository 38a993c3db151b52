"""Transition tables for every document type."""

import pytest
from fastapi import HTTPException

from pipetrade.services.state_machine import (
    enquiry_machine,
    invoice_machine,
    ncr_machine,
    po_machine,
    quotation_machine,
    requisition_machine,
    sales_order_machine,
    stock_machine,
)


def test_same_status_is_always_allowed():
    # Terminal statuses included
    quotation_machine.validate_transition("WON", "WON")
    po_machine.validate_transition("CANCELLED", "CANCELLED")


@pytest.mark.parametrize("current,new", [
    ("DRAFT", "PENDING_APPROVAL"),
    ("DRAFT", "APPROVED"),
    ("PENDING_APPROVAL", "APPROVED"),
    ("PENDING_APPROVAL", "REJECTED"),
    ("APPROVED", "SENT"),
    ("APPROVED", "EXPIRED"),
    ("SENT", "WON"),
    ("SENT", "LOST"),
    ("SENT", "EXPIRED"),
    ("SENT", "SUPERSEDED"),
    ("REJECTED", "DRAFT"),
])
def test_quotation_allowed_transitions(current, new):
    assert quotation_machine.can_transition(current, new)
    quotation_machine.validate_transition(current, new)


@pytest.mark.parametrize("current,new", [
    ("DRAFT", "SENT"),
    ("DRAFT", "WON"),
    ("PENDING_APPROVAL", "SENT"),
    ("APPROVED", "WON"),
])
def test_quotation_rejected_transitions(current, new):
    assert not quotation_machine.can_transition(current, new)
    with pytest.raises(HTTPException) as exc:
        quotation_machine.validate_transition(current, new)
    assert exc.value.status_code == 400
    assert "Invalid status transition" in exc.value.detail


@pytest.mark.parametrize("terminal", ["WON", "SUPERSEDED", "CANCELLED"])
def test_quotation_terminal_statuses(terminal):
    assert quotation_machine.is_terminal(terminal)
    with pytest.raises(HTTPException) as exc:
        quotation_machine.validate_transition(terminal, "DRAFT")
    assert "terminal state" in exc.value.detail


def test_error_lists_allowed_transitions():
    with pytest.raises(HTTPException) as exc:
        po_machine.validate_transition("DRAFT", "FULLY_RECEIVED")
    assert "Allowed transitions: OPEN, CANCELLED" in exc.value.detail


def test_po_receiving_path():
    assert po_machine.can_transition("DRAFT", "OPEN")
    assert po_machine.can_transition("OPEN", "PARTIALLY_RECEIVED")
    assert po_machine.can_transition("PARTIALLY_RECEIVED", "FULLY_RECEIVED")
    assert po_machine.can_transition("FULLY_RECEIVED", "CLOSED")
    assert not po_machine.can_transition("DRAFT", "PARTIALLY_RECEIVED")
    assert not po_machine.can_transition("FULLY_RECEIVED", "CANCELLED")


def test_transition_action_names():
    assert po_machine.get_transition_action("DRAFT", "OPEN") == "Release to Vendor"
    assert quotation_machine.get_transition_action("APPROVED", "SENT") == "Send to Customer"
    assert po_machine.get_transition_action("OPEN", "CLOSED") == "OPEN -> CLOSED"


def test_sales_order_transitions():
    assert sales_order_machine.get_allowed_transitions("FULLY_DISPATCHED") == ["CLOSED"]
    assert not sales_order_machine.can_transition("PARTIALLY_DISPATCHED", "CANCELLED")
    assert sales_order_machine.is_terminal("CLOSED")


def test_requisition_transitions():
    assert requisition_machine.can_transition("DRAFT", "PENDING_APPROVAL")
    assert requisition_machine.can_transition("APPROVED", "PO_CREATED")
    assert not requisition_machine.can_transition("DRAFT", "APPROVED")


def test_ncr_moves_one_step_at_a_time():
    assert ncr_machine.can_transition("OPEN", "UNDER_INVESTIGATION")
    assert not ncr_machine.can_transition("OPEN", "CLOSED")
    assert ncr_machine.can_transition("CLOSED", "VERIFIED")
    assert ncr_machine.is_terminal("VERIFIED")


def test_invoice_transitions():
    assert invoice_machine.can_transition("SENT", "PARTIALLY_PAID")
    assert invoice_machine.can_transition("PARTIALLY_PAID", "PAID")
    assert not invoice_machine.can_transition("PAID", "CANCELLED")
    assert not invoice_machine.can_transition("PARTIALLY_PAID", "CANCELLED")


def test_stock_transitions():
    assert stock_machine.can_transition("UNDER_INSPECTION", "ACCEPTED")
    assert stock_machine.can_transition("RESERVED", "ACCEPTED")
    assert not stock_machine.can_transition("UNDER_INSPECTION", "RESERVED")
    assert stock_machine.is_terminal("DISPATCHED")
    assert stock_machine.is_terminal("REJECTED")


def test_enquiry_transitions():
    assert enquiry_machine.can_transition("OPEN", "QUOTATION_PREPARED")
    assert enquiry_machine.can_transition("QUOTATION_PREPARED", "WON")
    assert not enquiry_machine.can_transition("OPEN", "WON")
