"""Requisitions, purchase orders and goods receipt."""

from pipetrade.models.document_sequence import DocumentSequence

FY = DocumentSequence.get_financial_year()

PO_LINE = {
    "product": "Seamless Pipe",
    "material": "ASTM A106 Gr.B",
    "size_label": '2"',
}


async def test_po_needs_approved_vendor(api):
    vendor = await api.vendor(approve=False)
    body = await api.post("PURCHASE", "/purchase/orders", {
        "vendor_id": vendor["id"],
        "items": [{**PO_LINE, "quantity": 10, "unit_rate": 100}],
    }, expected=400)
    assert "is not approved" in body["detail"]


async def test_small_po_released_by_purchase(api):
    vendor = await api.vendor()
    po = await api.post("PURCHASE", "/purchase/orders", {
        "vendor_id": vendor["id"],
        "items": [{**PO_LINE, "quantity": 100, "unit_rate": 450}],
    })
    assert po["po_no"] == f"PO/{FY}/00001"
    assert po["status"] == "DRAFT"
    assert po["version"] == 1
    assert po["total_amount"] == 45000
    assert po["vendor"]["name"] == vendor["name"]

    released = await api.patch("PURCHASE", f"/purchase/orders/{po['id']}", {"status": "OPEN"})
    assert released["status"] == "OPEN"
    assert released["approval_date"] is not None


async def test_large_po_release_needs_approval(api, users):
    vendor = await api.vendor()
    po = await api.post("PURCHASE", "/purchase/orders", {
        "vendor_id": vendor["id"],
        "items": [{**PO_LINE, "quantity": 200, "unit_rate": 500}],
    })
    assert po["total_amount"] == 100000

    await api.patch("PURCHASE", f"/purchase/orders/{po['id']}", {"status": "OPEN"}, expected=403)
    released = await api.patch("MANAGEMENT", f"/purchase/orders/{po['id']}", {"status": "OPEN"})
    assert released["status"] == "OPEN"
    assert released["approved_by_id"] == str(users["MANAGEMENT"].id)

    # Management approves but does not edit
    await api.patch("MANAGEMENT", f"/purchase/orders/{po['id']}", {"remarks": "Expedite"}, expected=403)


async def test_goods_receipt_rolls_up_po(api):
    vendor = await api.vendor()
    po = await api.released_po(vendor["id"], quantity=100)

    first = await api.receive(po["id"], [{
        "heat_no": " H-1001 ", "received_qty_mtr": 40, "mtc_no": "MTC-77",
        "mtc_date": "2024-05-02", "mtc_type": "MTC_3_1",
    }])
    assert first["grn_no"] == f"GRN/{FY}/00001"
    assert first["po_status"] == "PARTIALLY_RECEIVED"
    assert first["vendor_id"] == vendor["id"]
    assert first["items"][0]["heat_no"] == "H-1001"
    assert len(first["stock_ids"]) == 1

    stock = await api.get("STORES", f"/inventory/stock/{first['stock_ids'][0]}")
    assert stock["status"] == "UNDER_INSPECTION"
    assert stock["quantity_mtr"] == 40
    assert stock["specification"] == "ASTM A106 Gr.B"
    assert stock["grn_item_id"] == first["items"][0]["id"]

    progress = await api.get("PURCHASE", f"/purchase/orders/{po['id']}")
    assert progress["received_qty"] == 40
    assert progress["items"][0]["received_qty"] == 40

    second = await api.receive(po["id"], [
        {"heat_no": "H-1002", "received_qty_mtr": 35},
        {"heat_no": "H-1003", "received_qty_mtr": 25},
    ])
    assert second["po_status"] == "FULLY_RECEIVED"
    assert len(second["stock_ids"]) == 2

    grns = await api.get("QC", "/grn", params={"po_id": po["id"]})
    assert grns["total"] == 2


async def test_goods_receipt_requires_heat_number(api):
    vendor = await api.vendor()
    po = await api.released_po(vendor["id"])
    body = await api.post("STORES", "/grn", {
        "po_id": po["id"],
        "items": [
            {**PO_LINE, "heat_no": "H-1", "received_qty_mtr": 10},
            {**PO_LINE, "heat_no": "  ", "received_qty_mtr": 10},
        ],
    }, expected=400)
    assert "missing on item(s) 2" in body["detail"]


async def test_goods_receipt_against_draft_po(api):
    vendor = await api.vendor()
    po = await api.post("PURCHASE", "/purchase/orders", {
        "vendor_id": vendor["id"],
        "items": [{**PO_LINE, "quantity": 10, "unit_rate": 100}],
    })
    body = await api.post("STORES", "/grn", {
        "po_id": po["id"],
        "items": [{**PO_LINE, "heat_no": "H-9", "received_qty_mtr": 10}],
    }, expected=400)
    assert "DRAFT" in body["detail"]


async def test_only_stores_receive_goods(api):
    vendor = await api.vendor()
    po = await api.released_po(vendor["id"])
    await api.post("PURCHASE", "/grn", {
        "po_id": po["id"],
        "items": [{**PO_LINE, "heat_no": "H-9", "received_qty_mtr": 10}],
    }, expected=403)


async def test_amendment_keeps_number_and_cancels_source(api):
    vendor = await api.vendor()
    po = await api.released_po(vendor["id"], quantity=50)

    amended = await api.post("PURCHASE", f"/purchase/orders/{po['id']}/amend", {
        "change_reason": "Vendor revised rate",
        "items": [{**PO_LINE, "quantity": 50, "unit_rate": 520}],
    })
    assert amended["po_no"] == po["po_no"]
    assert amended["version"] == 2
    assert amended["status"] == "DRAFT"
    assert amended["parent_po_id"] == po["id"]
    assert amended["total_amount"] == 26000

    source = await api.get("PURCHASE", f"/purchase/orders/{po['id']}")
    assert source["status"] == "CANCELLED"

    await api.post("PURCHASE", f"/purchase/orders/{po['id']}/amend", {
        "change_reason": "Again",
        "items": [{**PO_LINE, "quantity": 1, "unit_rate": 1}],
    }, expected=400)


async def test_received_po_cannot_be_amended(api):
    vendor = await api.vendor()
    po = await api.released_po(vendor["id"], quantity=100)
    await api.receive(po["id"], [{"heat_no": "H-PART", "received_qty_mtr": 60}])

    body = await api.post("PURCHASE", f"/purchase/orders/{po['id']}/amend", {
        "change_reason": "Vendor revised rate",
        "items": [{**PO_LINE, "quantity": 100, "unit_rate": 520}],
    }, expected=400)
    assert body["detail"].startswith("PO in PARTIALLY_RECEIVED status cannot be amended")

    source = await api.get("PURCHASE", f"/purchase/orders/{po['id']}")
    assert source["status"] == "PARTIALLY_RECEIVED"
    assert source["received_qty"] == 60


async def test_delete_rules(api):
    vendor = await api.vendor()
    released = await api.released_po(vendor["id"])
    await api.call("DELETE", "PURCHASE", f"/purchase/orders/{released['id']}", expected=400)

    draft = await api.post("PURCHASE", "/purchase/orders", {
        "vendor_id": vendor["id"],
        "items": [{**PO_LINE, "quantity": 1, "unit_rate": 1}],
    })
    await api.call("DELETE", "PURCHASE", f"/purchase/orders/{draft['id']}", expected=204)


async def test_requisition_approval_and_conversion(api):
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [80])
    requisition = await api.post("SALES", "/purchase/requisitions", {
        "sales_order_id": order["id"],
        "items": [{**PO_LINE, "quantity": 80}],
    })
    assert requisition["pr_no"] == f"PR/{FY}/00001"
    assert requisition["status"] == "DRAFT"
    assert requisition["is_auto_generated"] is False

    path = f"/purchase/requisitions/{requisition['id']}/status"
    # Has to be submitted first
    await api.patch("MANAGEMENT", path, {"status": "APPROVED"}, expected=400)
    await api.patch("PURCHASE", path, {"status": "PENDING_APPROVAL"})
    await api.patch("PURCHASE", path, {"status": "APPROVED"}, expected=403)
    approved = await api.patch("MANAGEMENT", path, {"status": "APPROVED", "remarks": "ok"})
    assert approved["approval_remarks"] == "ok"

    body = await api.patch("ADMIN", path, {"status": "PO_CREATED"}, expected=400)
    assert "PO_CREATED is set when" in body["detail"]

    vendor = await api.vendor()
    po = await api.post("PURCHASE", "/purchase/orders", {
        "vendor_id": vendor["id"],
        "pr_id": requisition["id"],
        "items": [{**PO_LINE, "quantity": 80, "unit_rate": 400}],
    })
    assert po["pr_id"] == requisition["id"]
    assert po["sales_order_id"] == order["id"]

    converted = await api.get("PURCHASE", f"/purchase/requisitions/{requisition['id']}")
    assert converted["status"] == "PO_CREATED"

    # A converted requisition cannot be ordered twice
    await api.post("PURCHASE", "/purchase/orders", {
        "vendor_id": vendor["id"],
        "pr_id": requisition["id"],
        "items": [{**PO_LINE, "quantity": 80, "unit_rate": 400}],
    }, expected=400)


async def test_requisition_list_filters(api):
    await api.post("PURCHASE", "/purchase/requisitions", {"items": [{**PO_LINE, "quantity": 5}]})
    drafts = await api.get("SALES", "/purchase/requisitions", params={"status": "DRAFT"})
    assert drafts["total"] == 1
    pending = await api.get("SALES", "/purchase/requisitions", params={"status": "PENDING_APPROVAL"})
    assert pending["total"] == 0


async def quoted_order(api):
    """A sales order won on a quotation for 10 mtr of 2" pipe at 1000."""
    customer = await api.customer()
    quotation = await api.post("SALES", "/quotations", {
        "customer_id": customer["id"],
        "items": [{**PO_LINE, "quantity": 10, "unit_rate": 1000}],
    })
    await api.post("SALES", f"/quotations/{quotation['id']}/submit", expected=200)
    order = await api.post("SALES", "/sales-orders", {
        "customer_id": customer["id"],
        "quotation_id": quotation["id"],
        "items": [{**PO_LINE, "quantity": 10, "unit_rate": 1000}],
    })
    return quotation, order


async def test_po_matching_its_quotation_has_no_variance(api):
    quotation, order = await quoted_order(api)
    vendor = await api.vendor()
    po = await api.post("PURCHASE", "/purchase/orders", {
        "vendor_id": vendor["id"],
        "sales_order_id": order["id"],
        "items": [{**PO_LINE, "quantity": 10, "unit_rate": 1000}],
    })

    report = await api.get("PURCHASE", f"/purchase/orders/{po['id']}/variance")
    assert report["quotation_no"] == quotation["quotation_no"]
    assert report["has_variances"] is False
    assert report["requires_approval"] is False
    assert report["warnings"] == []


async def test_po_rate_and_spec_variance(api):
    _, order = await quoted_order(api)
    vendor = await api.vendor()
    po = await api.post("PURCHASE", "/purchase/orders", {
        "vendor_id": vendor["id"],
        "sales_order_id": order["id"],
        "items": [
            {**PO_LINE, "size_label": '3"', "quantity": 10, "unit_rate": 1100},
            {**PO_LINE, "quantity": 2, "unit_rate": 50},
        ],
    })

    report = await api.get("PURCHASE", f"/purchase/orders/{po['id']}/variance")
    assert report["has_variances"] is True
    assert report["requires_approval"] is True
    assert report["total_variance_amount"] == 1100
    assert report["total_variance_percent"] == 11

    by_field = {(v["line_no"], v["field"]): v for v in report["items"]}
    assert by_field[(0, "Total Amount")]["po_value"] == 11100
    assert by_field[(1, "Unit Rate")]["variance"] == 100
    assert by_field[(1, "Unit Rate")]["variance_percent"] == 10
    assert by_field[(1, "Specification")]["variance"] == "SPECIFICATION MISMATCH"
    assert (1, "Quantity") not in by_field
    assert any("more lines (2) than the quotation (1)" in w for w in report["warnings"])


async def test_po_without_quotation_reports_nothing(api):
    vendor = await api.vendor()
    po = await api.released_po(vendor["id"])
    await api.get("SALES", f"/purchase/orders/{po['id']}/variance", expected=403)
    report = await api.get("PURCHASE", f"/purchase/orders/{po['id']}/variance")
    assert report["has_variances"] is False
    assert report["quotation_id"] is None
    await api.get("PURCHASE", "/purchase/orders/00000000-0000-0000-0000-000000000000/variance", expected=404)
