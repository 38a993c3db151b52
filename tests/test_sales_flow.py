"""Enquiry -> quotation -> sales order."""

from pipetrade.config import settings
from pipetrade.models.document_sequence import DocumentSequence

FY = DocumentSequence.get_financial_year()


def quotation_payload(customer_id, quantity=10, unit_rate=1000, **extra):
    return {
        "customer_id": customer_id,
        "valid_upto": "2099-03-31",
        "items": [{
            "product": "Seamless Pipe",
            "material": "ASTM A106 Gr.B",
            "size_label": '4"',
            "quantity": quantity,
            "unit_rate": unit_rate,
            "unit_weight": 16.07,
        }],
        "terms": [{"term_name": "Price Basis", "term_value": "Ex-works Mumbai"}],
        **extra,
    }


REVISE = {"revision_trigger": "PRICE_NEGOTIATION"}


async def approved_quotation(api, customer_id, **payload):
    quotation = await api.post("SALES", "/quotations", quotation_payload(customer_id, **payload))
    return await api.post("SALES", f"/quotations/{quotation['id']}/submit", expected=200)


async def test_enquiry_to_sales_order(api):
    customer = await api.customer()
    enquiry = await api.post("SALES", "/enquiries", {
        "customer_id": customer["id"],
        "client_inquiry_no": "RFQ-118",
        "items": [{"product": "Seamless Pipe", "size_label": '4"', "quantity": 10}],
    })
    assert enquiry["enquiry_no"] == f"ENQ/{FY}/00001"
    assert enquiry["status"] == "OPEN"

    quotation = await api.post("SALES", "/quotations", quotation_payload(
        customer["id"], enquiry_id=enquiry["id"],
    ))
    assert quotation["quotation_no"] == f"NPS/{FY}/00001"
    assert quotation["status"] == "DRAFT"
    assert quotation["total_amount"] == 10000
    assert quotation["items"][0]["total_weight_mt"] == 0.161
    assert quotation["terms"][0]["term_no"] == 1
    assert (await api.get("SALES", f"/enquiries/{enquiry['id']}"))["status"] == "QUOTATION_PREPARED"

    # Below the threshold: approved on submit
    submitted = await api.post("SALES", f"/quotations/{quotation['id']}/submit", expected=200)
    assert submitted["status"] == "APPROVED"
    assert submitted["approval_remarks"].startswith("Auto-approved")

    sent = await api.patch("SALES", f"/quotations/{quotation['id']}/status", {"status": "SENT"})
    assert sent["sent_date"] is not None

    order = await api.post("SALES", "/sales-orders", {
        "customer_id": customer["id"],
        "quotation_id": quotation["id"],
        "items": [{"product": "Seamless Pipe", "size_label": '4"', "quantity": 10, "unit_rate": 1000}],
    })
    assert order["so_no"] == f"SO/{FY}/00001"
    assert order["status"] == "OPEN"
    assert order["po_acceptance_status"] == "ACCEPTED"
    assert order["total_amount"] == 10000

    assert (await api.get("SALES", f"/quotations/{quotation['id']}"))["status"] == "WON"
    assert (await api.get("SALES", f"/enquiries/{enquiry['id']}"))["status"] == "WON"


async def test_large_quotation_needs_management_approval(api):
    customer = await api.customer()
    quotation = await api.post("SALES", "/quotations", quotation_payload(customer["id"], quantity=100))
    assert quotation["total_amount"] == 100000

    pending = await api.post("SALES", f"/quotations/{quotation['id']}/submit", expected=200)
    assert pending["status"] == "PENDING_APPROVAL"

    await api.post("SALES", f"/quotations/{quotation['id']}/approve", {"action": "APPROVE"}, expected=403)
    approved = await api.post(
        "MANAGEMENT", f"/quotations/{quotation['id']}/approve",
        {"action": "APPROVE", "remarks": "Margin ok"}, expected=200,
    )
    assert approved["status"] == "APPROVED"
    assert approved["approval_remarks"] == "Margin ok"

    again = await api.post("MANAGEMENT", f"/quotations/{quotation['id']}/approve", {"action": "APPROVE"}, expected=400)
    assert "pending approval" in again["detail"]


async def test_invalid_approval_action(api):
    customer = await api.customer()
    quotation = await api.post("SALES", "/quotations", quotation_payload(customer["id"], quantity=200))
    await api.post("SALES", f"/quotations/{quotation['id']}/submit", expected=200)
    await api.post("MANAGEMENT", f"/quotations/{quotation['id']}/approve", {"action": "MAYBE"}, expected=422)


async def test_rejected_quotation_is_revised(api):
    customer = await api.customer()
    quotation = await api.post("SALES", "/quotations", quotation_payload(customer["id"], quantity=150))
    await api.post("SALES", f"/quotations/{quotation['id']}/submit", expected=200)
    rejected = await api.post("MANAGEMENT", f"/quotations/{quotation['id']}/approve", {"action": "REJECT"}, expected=200)
    assert rejected["status"] == "REJECTED"

    revision = await api.post("SALES", f"/quotations/{quotation['id']}/revise", {
        "revision_trigger": "CUSTOMER_PO_MISMATCH", "revision_notes": "Customer asked for 4 inch only",
    })
    assert revision["quotation_no"] == f"NPS/{FY}/00001-R1"
    assert revision["version"] == 2
    assert revision["status"] == "DRAFT"
    assert revision["parent_quotation_id"] == quotation["id"]
    assert revision["revision_trigger"] == "CUSTOMER_PO_MISMATCH"
    assert revision["total_amount"] == 150000
    assert len(revision["items"]) == 1
    assert len(revision["terms"]) == 1
    assert revision["change_snapshot"]["summary"]["has_item_changes"] is False

    # The source only gives way once the revision is submitted
    assert (await api.get("SALES", f"/quotations/{quotation['id']}"))["status"] == "REJECTED"
    body = await api.post("SALES", f"/quotations/{quotation['id']}/revise", REVISE, expected=400)
    assert "a draft or pending approval revision already exists" in body["detail"]
    await api.post("SALES", f"/quotations/{revision['id']}/revise", REVISE, expected=400)

    submitted = await api.post("SALES", f"/quotations/{revision['id']}/submit", expected=200)
    assert submitted["status"] == "PENDING_APPROVAL"
    assert (await api.get("SALES", f"/quotations/{quotation['id']}"))["status"] == "SUPERSEDED"
    await api.post("SALES", f"/quotations/{quotation['id']}/revise", REVISE, expected=400)


async def test_revision_needs_a_trigger(api):
    customer = await api.customer()
    quotation = await approved_quotation(api, customer["id"])

    await api.post("SALES", f"/quotations/{quotation['id']}/revise", {}, expected=422)
    await api.post("SALES", f"/quotations/{quotation['id']}/revise", {"revision_trigger": "BOGUS"}, expected=422)
    await api.post("SALES", f"/quotations/{quotation['id']}/revise", {"revision_trigger": "OTHER"}, expected=422)

    revision = await api.post("SALES", f"/quotations/{quotation['id']}/revise", {
        "revision_trigger": "OTHER", "revision_sub_reason": "Site relocated",
    })
    assert revision["revision_sub_reason"] == "Site relocated"


async def test_revision_numbers_keep_the_root(api):
    customer = await api.customer()
    quotation = await approved_quotation(api, customer["id"])

    first = await api.post("SALES", f"/quotations/{quotation['id']}/revise", REVISE)
    await api.post("SALES", f"/quotations/{first['id']}/submit", expected=200)
    second = await api.post("SALES", f"/quotations/{first['id']}/revise", REVISE)

    assert second["quotation_no"] == f"NPS/{FY}/00001-R2"
    assert second["version"] == 3


async def test_revision_with_new_prices_is_compared(api):
    customer = await api.customer()
    quotation = await approved_quotation(api, customer["id"])

    revision = await api.post("SALES", f"/quotations/{quotation['id']}/revise", {
        "revision_trigger": "PRICE_NEGOTIATION",
        "valid_upto": "2099-06-30",
        "items": [
            {"product": "Seamless Pipe", "material": "ASTM A106 Gr.B", "size_label": '4"',
             "quantity": 10, "unit_rate": 900, "unit_weight": 16.07},
            {"product": "Seamless Pipe", "material": "ASTM A106 Gr.B", "size_label": '6"',
             "quantity": 5, "unit_rate": 1600},
        ],
        "terms": [{"term_name": "Price Basis", "term_value": "FOR Site"}],
    })
    assert revision["total_amount"] == 17000
    assert revision["valid_upto"] == "2099-06-30"

    snapshot = revision["change_snapshot"]
    assert snapshot["previous_version"] == 1
    assert snapshot["current_version"] == 2
    assert snapshot["header_changes"] == {"valid_upto": {"old": "2099-03-31", "new": "2099-06-30"}}

    comparison = await api.get("MANAGEMENT", f"/quotations/{revision['id']}/compare")
    assert comparison["left"]["id"] == quotation["id"]
    assert comparison["right"]["id"] == revision["id"]
    assert comparison["right"]["item_count"] == 2
    (modified,) = comparison["items_modified"]
    assert modified["s_no"] == 1
    assert modified["changes"]["unit_rate"] == {"old": 1000, "new": 900}
    assert modified["changes"]["amount"] == {"old": 10000, "new": 9000}
    assert [item["size_label"] for item in comparison["items_added"]] == ['6"']
    assert comparison["items_removed"] == []
    assert comparison["terms_changes"] == [{
        "term_name": "Price Basis", "change": "modified", "old": "Ex-works Mumbai", "new": "FOR Site",
    }]
    assert comparison["summary"]["total_change"] == 7000
    assert comparison["summary"]["total_change_percent"] == 70
    assert comparison["summary"]["item_count_change"] == 1

    # Either side can be named; the older revision is always on the left
    reverse = await api.get("SALES", f"/quotations/{quotation['id']}/compare", params={
        "compare_with": revision["id"],
    })
    assert reverse["left"]["version"] == 1
    assert reverse["summary"] == comparison["summary"]

    body = await api.get("SALES", f"/quotations/{quotation['id']}/compare", expected=400)
    assert body["detail"].startswith("No previous revision to compare with")

    other = await approved_quotation(api, customer["id"])
    body = await api.get("SALES", f"/quotations/{revision['id']}/compare", params={
        "compare_with": other["id"],
    }, expected=400)
    assert body["detail"] == "Can only compare revisions of the same quotation"


async def test_revision_limit(api, monkeypatch):
    monkeypatch.setattr(settings, "MAX_QUOTATION_REVISIONS", 1)
    customer = await api.customer()
    quotation = await approved_quotation(api, customer["id"])

    first = await api.post("SALES", f"/quotations/{quotation['id']}/revise", REVISE)
    await api.post("SALES", f"/quotations/{first['id']}/submit", expected=200)

    body = await api.post("SALES", f"/quotations/{first['id']}/revise", REVISE, expected=400)
    assert body["detail"] == "Maximum 1 revisions reached for this quotation"


async def test_deleting_a_draft_revision_leaves_the_source_usable(api):
    customer = await api.customer()
    quotation = await approved_quotation(api, customer["id"])

    revision = await api.post("SALES", f"/quotations/{quotation['id']}/revise", REVISE)
    await api.call("DELETE", "SALES", f"/quotations/{revision['id']}", expected=204)
    assert (await api.get("SALES", f"/quotations/{quotation['id']}"))["status"] == "APPROVED"

    again = await api.post("SALES", f"/quotations/{quotation['id']}/revise", REVISE)
    assert again["quotation_no"] == f"NPS/{FY}/00001-R1"
    await api.call("DELETE", "SALES", f"/quotations/{again['id']}", expected=204)

    order = await api.post("SALES", "/sales-orders", {
        "customer_id": customer["id"],
        "quotation_id": quotation["id"],
        "items": [{"quantity": 10, "unit_rate": 1000}],
    })
    assert order["quotation_id"] == quotation["id"]


async def test_submitted_revision_cannot_be_deleted(api):
    customer = await api.customer()
    quotation = await approved_quotation(api, customer["id"])
    revision = await api.post("SALES", f"/quotations/{quotation['id']}/revise", REVISE)
    await api.post("SALES", f"/quotations/{revision['id']}/submit", expected=200)
    await api.patch("SALES", f"/quotations/{revision['id']}/status", {"status": "SENT"})
    await api.patch("SALES", f"/quotations/{revision['id']}/status", {"status": "LOST"})

    body = await api.call("DELETE", "SALES", f"/quotations/{revision['id']}", expected=400)
    assert body["detail"] == f"Revision {revision['quotation_no']} has superseded {quotation['quotation_no']} and cannot be deleted"


async def test_won_source_blocks_its_revision(api):
    customer = await api.customer()
    quotation = await approved_quotation(api, customer["id"])
    revision = await api.post("SALES", f"/quotations/{quotation['id']}/revise", REVISE)

    await api.post("SALES", "/sales-orders", {
        "customer_id": customer["id"],
        "quotation_id": quotation["id"],
        "items": [{"quantity": 10, "unit_rate": 1000}],
    })
    body = await api.post("SALES", f"/quotations/{revision['id']}/submit", expected=400)
    assert "is already WON" in body["detail"]
    assert (await api.get("SALES", f"/quotations/{revision['id']}"))["status"] == "DRAFT"
async def test_status_rules(api):
    customer = await api.customer()
    quotation = await api.post("SALES", "/quotations", quotation_payload(customer["id"]))

    body = await api.patch("SALES", f"/quotations/{quotation['id']}/status", {"status": "APPROVED"}, expected=400)
    assert "cannot be set directly" in body["detail"]

    body = await api.patch("SALES", f"/quotations/{quotation['id']}/status", {"status": "SENT"}, expected=400)
    assert "Invalid status transition" in body["detail"]

    cancelled = await api.patch("SALES", f"/quotations/{quotation['id']}/status", {"status": "cancelled"})
    assert cancelled["status"] == "CANCELLED"


async def test_sales_order_needs_orderable_quotation(api):
    customer = await api.customer()
    quotation = await api.post("SALES", "/quotations", quotation_payload(customer["id"]))

    body = await api.post("SALES", "/sales-orders", {
        "customer_id": customer["id"],
        "quotation_id": quotation["id"],
        "items": [{"quantity": 10, "unit_rate": 1000}],
    }, expected=400)
    assert "APPROVED or SENT" in body["detail"]


async def test_sales_order_needs_quotation_or_customer_po(api):
    customer = await api.customer()
    await api.post("SALES", "/sales-orders", {
        "customer_id": customer["id"],
        "items": [{"quantity": 10, "unit_rate": 1000}],
    }, expected=422)


async def test_approved_quotation_cannot_be_deleted(api):
    customer = await api.customer()
    quotation = await api.post("SALES", "/quotations", quotation_payload(customer["id"]))
    await api.post("SALES", f"/quotations/{quotation['id']}/submit", expected=200)
    await api.call("DELETE", "SALES", f"/quotations/{quotation['id']}", expected=400)

    draft = await api.post("SALES", "/quotations", quotation_payload(customer["id"]))
    await api.call("DELETE", "SALES", f"/quotations/{draft['id']}", expected=204)
    await api.get("SALES", f"/quotations/{draft['id']}", expected=404)


async def test_ordered_quotation_cannot_be_deleted(api):
    customer = await api.customer()
    quotation = await approved_quotation(api, customer["id"])
    await api.post("SALES", "/sales-orders", {
        "customer_id": customer["id"],
        "quotation_id": quotation["id"],
        "items": [{"quantity": 10, "unit_rate": 1000}],
    })
    assert (await api.get("SALES", f"/quotations/{quotation['id']}"))["status"] == "WON"

    body = await api.call("DELETE", "SALES", f"/quotations/{quotation['id']}", expected=400)
    assert body["detail"] == "Quotation is linked to a sales order and cannot be deleted"


async def test_sales_order_status_and_delete(api):
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [25, 40])
    assert [item["s_no"] for item in order["items"]] == [1, 2]
    assert order["total_amount"] == 65000

    listed = await api.get("STORES", "/sales-orders", params={"status": "OPEN"})
    assert listed["total"] == 1

    await api.patch("SALES", f"/sales-orders/{order['id']}", {"status": "FULLY_DISPATCHED"})
    body = await api.patch("SALES", f"/sales-orders/{order['id']}", {"status": "OPEN"}, expected=400)
    assert "Allowed transitions: CLOSED" in body["detail"]
    await api.call("DELETE", "SALES", f"/sales-orders/{order['id']}", expected=400)

    other = await api.sales_order(customer["id"], [5])
    await api.call("DELETE", "SALES", f"/sales-orders/{other['id']}", expected=204)


async def test_quotation_permissions(api):
    customer = await api.customer()
    await api.post("PURCHASE", "/quotations", quotation_payload(customer["id"]), expected=403)
    await api.get("STORES", "/quotations", expected=403)
    listing = await api.get("MANAGEMENT", "/quotations")
    assert listing["total"] == 0
