"""
Pure business rules shared by the document services.

Nothing in here touches the database, so the rules can be unit-tested
directly and reused by services and background jobs alike.
"""
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Sequence

from num2words import num2words

from pipetrade.config import settings
from pipetrade.models.billing import InvoiceStatus, InvoiceType
from pipetrade.models.quality_control import InspectionResult
from pipetrade.models.sales import QuotationStatus

TWO_PLACES = Decimal("0.01")
THREE_PLACES = Decimal("0.001")

# Quotation statuses that may be revised
REVISABLE_QUOTATION_STATUSES = [
    QuotationStatus.APPROVED.value,
    QuotationStatus.SENT.value,
    QuotationStatus.REJECTED.value,
    QuotationStatus.EXPIRED.value,
    QuotationStatus.LOST.value,
]

# A revision chain may hold at most one of these at a time
ACTIVE_DRAFT_STATUSES = [
    QuotationStatus.DRAFT.value,
    QuotationStatus.PENDING_APPROVAL.value,
]


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value) -> Decimal:
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def line_amount(quantity, rate) -> Decimal:
    """quantity x rate, rounded to paise."""
    return money(to_decimal(quantity) * to_decimal(rate))


def total_weight_mt(quantity, unit_weight) -> Optional[Decimal]:
    """Metres x kg/m converted to metric tonnes."""
    if unit_weight is None:
        return None
    return (to_decimal(quantity) * to_decimal(unit_weight) / Decimal("1000")).quantize(
        THREE_PLACES, rounding=ROUND_HALF_UP
    )


# ==================== Approvals ====================

APPROVAL_THRESHOLDS = {
    "quotation": lambda: settings.QUOTATION_APPROVAL_THRESHOLD,
    "purchaseOrder": lambda: settings.PO_APPROVAL_THRESHOLD,
    "purchaseRequisition": lambda: settings.PR_APPROVAL_THRESHOLD,
}


def requires_approval(document: str, amount) -> bool:
    """True when the amount is at or above the document's approval threshold."""
    threshold = APPROVAL_THRESHOLDS.get(document)
    if threshold is None:
        return False
    return to_decimal(amount) >= to_decimal(threshold())


# ==================== Quality ====================

def overall_inspection_result(results: Iterable[str]) -> str:
    """FAIL beats HOLD beats PASS."""
    results = list(results)
    if InspectionResult.FAIL.value in results:
        return InspectionResult.FAIL.value
    if InspectionResult.HOLD.value in results:
        return InspectionResult.HOLD.value
    return InspectionResult.PASS.value


def ncr_closure_missing_fields(ncr_fields: Dict[str, Optional[str]]) -> List[str]:
    """Fields that must be filled before an NCR can be closed."""
    required = ["root_cause", "corrective_action", "preventive_action", "disposition"]
    return [name for name in required if not ncr_fields.get(name)]


# ==================== Inventory ====================

def fifo_warning(selected_ids: Sequence, fifo_ordered_ids: Sequence) -> Optional[str]:
    """
    Warn when the selected heats are not the oldest available ones.

    fifo_ordered_ids must already be sorted oldest first.
    """
    if not selected_ids:
        return None
    oldest = list(fifo_ordered_ids)[:len(selected_ids)]
    skipped = [stock_id for stock_id in oldest if stock_id not in selected_ids]
    if not skipped:
        return None
    return (
        f"FIFO not followed: {len(skipped)} older heat(s) are available "
        f"for this item and were not selected."
    )


# ==================== Invoicing ====================

def calculate_gst(
    subtotal,
    tax_rate,
    invoice_type: str,
    customer_state: Optional[str],
    company_state: Optional[str] = None,
) -> Dict[str, Decimal]:
    """
    Split GST for an invoice.

    Export invoices carry no tax. Domestic invoices to a customer in the
    company's own state carry CGST + SGST (half the rate each), otherwise
    IGST at the full rate.
    """
    subtotal = to_decimal(subtotal)
    rate = to_decimal(tax_rate)
    company_state = company_state or settings.COMPANY_STATE
    zero = Decimal("0.00")

    if invoice_type == InvoiceType.EXPORT.value:
        return {"cgst": zero, "sgst": zero, "igst": zero}

    same_state = (customer_state or "").strip().lower() == company_state.strip().lower()
    if same_state:
        half = money(subtotal * rate / Decimal("200"))
        return {"cgst": half, "sgst": half, "igst": zero}
    return {"cgst": zero, "sgst": zero, "igst": money(subtotal * rate / Decimal("100"))}


CURRENCY_NAMES = {
    "INR": ("Rupees", "Paise"),
    "USD": ("US Dollars", "Cents"),
    "EUR": ("Euros", "Cents"),
    "AED": ("AED", "Fils"),
}


def _spell(number: int, lang: str) -> str:
    words = num2words(number, lang=lang).replace(",", "").replace("-", " ").title()
    return words.replace(" And ", " and ")


def amount_in_words(amount, currency: str = "INR") -> str:
    """
    Spell out an amount for printing on invoices.

    INR uses the Indian system (Lakh/Crore), everything else the
    Western one (Million/Billion).
    """
    amount = money(amount)
    if amount < 0:
        return "Minus " + amount_in_words(-amount, currency)

    lang = "en_IN" if currency == "INR" else "en"
    whole = int(amount)
    fraction = int((amount - whole) * 100)
    currency_name, subunit_name = CURRENCY_NAMES.get(currency, (currency, "Cents"))

    words = _spell(whole, lang)
    if fraction:
        fraction_words = _spell(fraction, lang)
        return f"{currency_name} {words} and {fraction_words} {subunit_name} Only"
    return f"{currency_name} {words} Only"


def payment_status(total_amount, total_paid) -> str:
    """Invoice status implied by what has been received so far."""
    if to_decimal(total_paid) >= to_decimal(total_amount):
        return InvoiceStatus.PAID.value
    return InvoiceStatus.PARTIALLY_PAID.value


# ==================== Revision comparison ====================

REVISION_HEADER_FIELDS = ["valid_upto", "currency", "payment_terms", "delivery_terms", "remarks"]
REVISION_ITEM_FIELDS = [
    "product", "material", "additional_spec", "size_label", "od", "wt",
    "length", "ends", "quantity", "unit_rate", "amount", "delivery", "remark",
]


def _plain(value):
    """JSON-safe form of a column value."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _item_brief(item) -> dict:
    return {
        "s_no": item.s_no,
        "product": item.product,
        "material": item.material,
        "size_label": item.size_label,
        "quantity": _plain(item.quantity),
        "unit_rate": _plain(item.unit_rate),
        "amount": _plain(item.amount),
    }


def revision_changes(older, newer) -> dict:
    """
    What changed between two revisions of a quotation.

    Lines are matched by s_no, terms by name. The result is plain JSON so
    it can be stored on the revision as its change snapshot.
    """
    header_changes = {}
    for field in REVISION_HEADER_FIELDS:
        old, new = _plain(getattr(older, field)), _plain(getattr(newer, field))
        if old != new:
            header_changes[field] = {"old": old, "new": new}

    old_items = {item.s_no: item for item in older.items}
    new_items = {item.s_no: item for item in newer.items}
    items_added, items_modified, items_unchanged = [], [], []
    for s_no, item in sorted(new_items.items()):
        previous = old_items.get(s_no)
        if previous is None:
            items_added.append(_item_brief(item))
            continue
        changes = {}
        for field in REVISION_ITEM_FIELDS:
            old, new = _plain(getattr(previous, field)), _plain(getattr(item, field))
            if old != new:
                changes[field] = {"old": old, "new": new}
        if changes:
            items_modified.append({"s_no": s_no, "product": item.product, "changes": changes})
        else:
            items_unchanged.append({"s_no": s_no, "product": item.product})
    items_removed = [
        _item_brief(item) for s_no, item in sorted(old_items.items()) if s_no not in new_items
    ]

    old_terms = {term.term_name: term.term_value for term in older.terms}
    new_terms = {term.term_name: term.term_value for term in newer.terms}
    terms_changes = []
    for name, value in new_terms.items():
        if name not in old_terms:
            terms_changes.append({"term_name": name, "change": "added", "old": None, "new": value})
        elif old_terms[name] != value:
            terms_changes.append({"term_name": name, "change": "modified", "old": old_terms[name], "new": value})
    for name, value in old_terms.items():
        if name not in new_terms:
            terms_changes.append({"term_name": name, "change": "removed", "old": value, "new": None})

    old_total, new_total = to_decimal(older.total_amount), to_decimal(newer.total_amount)
    total_change = money(new_total - old_total)
    return {
        "previous_version": older.version,
        "current_version": newer.version,
        "header_changes": header_changes,
        "items_added": items_added,
        "items_removed": items_removed,
        "items_modified": items_modified,
        "items_unchanged": items_unchanged,
        "terms_changes": terms_changes,
        "summary": {
            "total_change": float(total_change),
            "total_change_percent": float(money(total_change * 100 / old_total)) if old_total else 0.0,
            "item_count_change": len(newer.items) - len(older.items),
            "has_header_changes": bool(header_changes),
            "has_item_changes": bool(items_added or items_removed or items_modified),
            "has_terms_changes": bool(terms_changes),
        },
    }


# ==================== PO vs quotation variance ====================

# Total drift below this share of the quotation is noise
TOTAL_VARIANCE_TOLERANCE_PERCENT = Decimal("0.1")
TOTAL_VARIANCE_APPROVAL_PERCENT = Decimal("5")
LINE_VARIANCE_APPROVAL_PERCENT = Decimal("10")


def _percent(change: Decimal, base: Decimal) -> Optional[Decimal]:
    if not base:
        return None
    return money(change * 100 / base)


def _float(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def po_variances(quotation, po_items: Sequence, po_total) -> dict:
    """
    Compare a PO against the quotation behind its sales order.

    Lines are compared by position. Rate changes and specification
    mismatches always need management approval, as do a total drift above
    5% or any line drifting more than 10%.
    """
    variances: List[dict] = []
    warnings: List[str] = []

    if quotation.status not in (QuotationStatus.APPROVED.value, QuotationStatus.WON.value):
        warnings.append(
            f"Quotation {quotation.quotation_no} is {quotation.status}, not APPROVED"
        )

    quoted_items = sorted(quotation.items, key=lambda item: item.s_no)
    quoted_total = sum((to_decimal(item.amount) for item in quoted_items), Decimal("0"))
    total_variance = money(to_decimal(po_total) - quoted_total)
    total_percent = _percent(total_variance, quoted_total) or Decimal("0")

    if abs(total_percent) > TOTAL_VARIANCE_TOLERANCE_PERCENT:
        variances.append({
            "line_no": 0,
            "field": "Total Amount",
            "quotation_value": float(quoted_total),
            "po_value": float(money(po_total)),
            "variance": float(total_variance),
            "variance_percent": float(total_percent),
        })

    for line_no, po_item in enumerate(po_items, start=1):
        if line_no > len(quoted_items):
            warnings.append(
                f"PO has more lines ({len(po_items)}) than the quotation ({len(quoted_items)}); "
                f"extra lines start at line {line_no}"
            )
            break
        quoted = quoted_items[line_no - 1]

        for field, label, tolerance in (
            ("quantity", "Quantity", Decimal("0")),
            ("unit_rate", "Unit Rate", TWO_PLACES),
            ("amount", "Amount", TWO_PLACES),
        ):
            quoted_value = to_decimal(getattr(quoted, field))
            po_value = to_decimal(getattr(po_item, field))
            change = po_value - quoted_value
            if abs(change) > tolerance:
                variances.append({
                    "line_no": line_no,
                    "field": label,
                    "quotation_value": float(quoted_value),
                    "po_value": float(po_value),
                    "variance": float(change),
                    "variance_percent": _float(_percent(change, quoted_value)),
                })

        quoted_spec = (quoted.product, quoted.material, quoted.size_label)
        po_spec = (po_item.product, po_item.material, po_item.size_label)
        if quoted_spec != po_spec:
            variances.append({
                "line_no": line_no,
                "field": "Specification",
                "quotation_value": " ".join(filter(None, quoted_spec)),
                "po_value": " ".join(filter(None, po_spec)),
                "variance": "SPECIFICATION MISMATCH",
                "variance_percent": None,
            })
            warnings.append(f"Specification mismatch on line {line_no}: product, material or size differs")

    if len(po_items) < len(quoted_items):
        warnings.append(
            f"PO has fewer lines ({len(po_items)}) than the quotation ({len(quoted_items)})"
        )

    requires_management = (
        abs(total_percent) > TOTAL_VARIANCE_APPROVAL_PERCENT
        or any(v["field"] in ("Specification", "Unit Rate") for v in variances)
        or any(
            v["variance_percent"] is not None
            and abs(v["variance_percent"]) > LINE_VARIANCE_APPROVAL_PERCENT
            for v in variances if v["line_no"]
        )
    )
    return {
        "has_variances": bool(variances),
        "total_variance_amount": float(total_variance),
        "total_variance_percent": float(total_percent),
        "items": variances,
        "warnings": warnings,
        "requires_approval": requires_management,
    }
