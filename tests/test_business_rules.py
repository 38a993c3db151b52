"""Pure rules: numbering, tax, approvals, FIFO, payments and QC outcomes."""

from datetime import date
from decimal import Decimal

import pytest

from pipetrade.models.document_sequence import DocumentSequence
from pipetrade.services import business_rules as rules


@pytest.mark.parametrize("on,expected", [
    (date(2025, 1, 15), "2024-25"),
    (date(2025, 3, 31), "2024-25"),
    (date(2025, 4, 1), "2025-26"),
    (date(2099, 12, 31), "2099-00"),
])
def test_financial_year(on, expected):
    assert DocumentSequence.get_financial_year(on) == expected


def test_sequence_restarts_on_new_financial_year():
    sequence = DocumentSequence(
        document_type="SALES_ORDER", prefix="SO", financial_year="2024-25",
        current_number=41, padding_length=5,
    )
    assert sequence.preview_next_number("2024-25") == "SO/2024-25/00042"
    assert sequence.get_next_number("2024-25") == "SO/2024-25/00042"
    assert sequence.preview_next_number("2025-26") == "SO/2025-26/00001"
    assert sequence.get_next_number("2025-26") == "SO/2025-26/00001"
    assert sequence.current_number == 1


def test_line_amount_and_weight():
    assert rules.line_amount(12.5, "1000.10") == Decimal("12501.25")
    assert rules.total_weight_mt(100, "5.44") == Decimal("0.544")
    assert rules.total_weight_mt(100, None) is None


@pytest.mark.parametrize("document,amount,expected", [
    ("quotation", 99999.99, False),
    ("quotation", 100000, True),
    ("purchaseOrder", 150000, True),
    ("purchaseRequisition", 50000, True),
    ("purchaseRequisition", 49999, False),
    ("invoice", 10 ** 9, False),
])
def test_requires_approval(document, amount, expected):
    assert rules.requires_approval(document, amount) is expected


def test_gst_same_state_splits_cgst_and_sgst():
    tax = rules.calculate_gst(100000, 18, "DOMESTIC", "maharashtra ")
    assert tax == {"cgst": Decimal("9000.00"), "sgst": Decimal("9000.00"), "igst": Decimal("0.00")}


def test_gst_other_state_is_igst():
    tax = rules.calculate_gst(100000, 18, "DOMESTIC", "Gujarat")
    assert tax["igst"] == Decimal("18000.00")
    assert tax["cgst"] == tax["sgst"] == Decimal("0.00")


def test_gst_missing_customer_state_is_igst():
    assert rules.calculate_gst(1000, 12, "DOMESTIC", None)["igst"] == Decimal("120.00")


def test_gst_export_has_no_tax():
    tax = rules.calculate_gst(100000, 18, "EXPORT", "Maharashtra")
    assert sum(tax.values()) == 0


def test_amount_in_words_uses_lakhs_for_rupees():
    assert rules.amount_in_words(118000) == "Rupees One Lakh Eighteen Thousand Only"


def test_amount_in_words_with_paise():
    assert rules.amount_in_words("50.50") == "Rupees Fifty and Fifty Paise Only"


def test_amount_in_words_keeps_and_lowercase():
    assert rules.amount_in_words(123) == "Rupees One Hundred and Twenty Three Only"
    assert rules.amount_in_words(2105, "USD") == "US Dollars Two Thousand One Hundred and Five Only"


def test_amount_in_words_foreign_currency():
    assert rules.amount_in_words(1500000, "USD") == "US Dollars One Million Five Hundred Thousand Only"


def test_payment_status():
    assert rules.payment_status(1000, 400) == "PARTIALLY_PAID"
    assert rules.payment_status(1000, 1000) == "PAID"
    assert rules.payment_status(1000, Decimal("1000.01")) == "PAID"


@pytest.mark.parametrize("results,expected", [
    (["PASS", "PASS"], "PASS"),
    (["PASS", "HOLD"], "HOLD"),
    (["HOLD", "FAIL", "PASS"], "FAIL"),
])
def test_overall_inspection_result(results, expected):
    assert rules.overall_inspection_result(results) == expected


def test_ncr_closure_missing_fields():
    assert rules.ncr_closure_missing_fields({
        "root_cause": "Wrong heat treatment",
        "corrective_action": "",
        "preventive_action": None,
    }) == ["corrective_action", "preventive_action", "disposition"]
    assert rules.ncr_closure_missing_fields({
        "root_cause": "a", "corrective_action": "b", "preventive_action": "c", "disposition": "d",
    }) == []


def test_fifo_warning_when_older_heat_skipped():
    warning = rules.fifo_warning(["heat-new"], ["heat-old", "heat-new"])
    assert warning.startswith("FIFO not followed")
    assert "1 older heat(s)" in warning


def test_fifo_no_warning_when_oldest_selected():
    assert rules.fifo_warning(["heat-old"], ["heat-old", "heat-new"]) is None
    assert rules.fifo_warning([], ["heat-old"]) is None
