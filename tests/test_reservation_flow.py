"""Reservations with FIFO warnings, shortfall analysis, auto-PR and stock issues."""

from pipetrade.models.document_sequence import DocumentSequence

FY = DocumentSequence.get_financial_year()


async def test_fifo_order_and_warning(api):
    old = await api.accepted_stock("H-OLD", quantity=100, mtc_date="2024-01-10")
    new = await api.accepted_stock("H-NEW", quantity=100, mtc_date="2024-06-01")
    undated = await api.accepted_stock("H-UNDATED", quantity=100)
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [150])
    line_id = order["items"][0]["id"]

    available = await api.get("SALES", f"/sales-orders/{order['id']}/available-stock", params={"so_item_id": line_id})
    assert [s["id"] for s in available] == [old, new, undated]

    skipped_old = await api.reserve(order, 0, new, 100)
    assert skipped_old["fifo_warning"].startswith("FIFO not followed")
    assert skipped_old["reservation"]["status"] == "RESERVED"

    stock = await api.get("SALES", f"/inventory/stock/{new}")
    assert stock["status"] == "RESERVED"
    assert stock["quantity_mtr"] == 0
    assert stock["reserved_for_so_id"] == order["id"]

    in_order = await api.reserve(order, 0, old, 50)
    assert in_order["fifo_warning"] is None

    reservations = await api.get("SALES", f"/sales-orders/{order['id']}/reservations")
    assert sorted(r["reserved_qty_mtr"] for r in reservations) == [50, 100]


async def test_reserve_rejects_unaccepted_or_excess_stock(api):
    vendor = await api.vendor()
    po = await api.released_po(vendor["id"], quantity=40)
    grn = await api.receive(po["id"], [{"heat_no": "H-PENDING", "received_qty_mtr": 40}])
    accepted = await api.accepted_stock("H-OK", quantity=40)
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [60])

    body = await api.post(
        "SALES", f"/sales-orders/{order['id']}/reserve",
        {"so_item_id": order["items"][0]["id"], "inventory_stock_id": grn["stock_ids"][0], "reserved_qty_mtr": 10},
        expected=400,
    )
    assert body["detail"] == "Stock is not in ACCEPTED status"

    body = await api.post(
        "SALES", f"/sales-orders/{order['id']}/reserve",
        {"so_item_id": order["items"][0]["id"], "inventory_stock_id": accepted, "reserved_qty_mtr": 41},
        expected=400,
    )
    assert body["detail"].startswith("Insufficient stock quantity")


async def test_reserve_needs_sales_write(api):
    stock_id = await api.accepted_stock("H-1")
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [10])
    await api.post("STORES", f"/sales-orders/{order['id']}/reserve", {
        "so_item_id": order["items"][0]["id"], "inventory_stock_id": stock_id, "reserved_qty_mtr": 10,
    }, expected=403)


async def test_shortfall_and_auto_pr(api):
    stock_id = await api.accepted_stock("H-SF", quantity=100)
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [150, 30])
    await api.reserve(order, 1, stock_id, 30)

    analysis = await api.get("PURCHASE", f"/sales-orders/{order['id']}/shortfall")
    assert analysis["so_no"] == order["so_no"]
    first, second = analysis["items"]
    # The heat is now reserved, so nothing is left on hand for line 1
    assert first["available_qty"] == 0
    assert first["shortfall_qty"] == 150
    assert second["reserved_qty"] == 30
    assert second["remaining_qty"] == 0
    assert second["shortfall_qty"] == 0
    assert analysis["total_shortfall"] == 150
    assert analysis["has_shortfall"] is True

    created = await api.post("SALES", f"/sales-orders/{order['id']}/auto-pr")
    assert created["success"] is True
    requisition = created["requisition"]
    assert requisition["pr_no"] == f"PR/{FY}/00001"
    assert requisition["status"] == "DRAFT"
    assert requisition["is_auto_generated"] is True
    assert requisition["sales_order_id"] == order["id"]
    assert [(i["s_no"], i["quantity"]) for i in requisition["items"]] == [(1, 150)]

    linked = await api.get("PURCHASE", "/purchase/requisitions", params={"sales_order_id": order["id"]})
    assert linked["total"] == 1


async def test_auto_pr_can_submit_directly(api):
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [75])
    created = await api.post("PURCHASE", f"/sales-orders/{order['id']}/auto-pr", {"auto_submit": True})
    assert created["requisition"]["status"] == "PENDING_APPROVAL"


async def test_auto_pr_skips_small_or_no_shortfall(api):
    await api.accepted_stock("H-BIG", quantity=100)
    customer = await api.customer()

    covered = await api.sales_order(customer["id"], [100])
    body = await api.post("SALES", f"/sales-orders/{covered['id']}/auto-pr", expected=200)
    assert body["success"] is False
    assert body["message"].startswith("No shortfall")
    assert body["requisition"] is None

    slightly_short = await api.sales_order(customer["id"], [105])
    body = await api.post("SALES", f"/sales-orders/{slightly_short['id']}/auto-pr", expected=200)
    assert body["success"] is False
    assert "below the minimum of 10" in body["message"]


async def test_auto_pr_permission(api):
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [75])
    await api.post("STORES", f"/sales-orders/{order['id']}/auto-pr", expected=403)


async def test_deleting_order_releases_reservations(api):
    stock_id = await api.accepted_stock("H-REL", quantity=80)
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [50])
    await api.post("SALES", f"/sales-orders/{order['id']}/reserve", {
        "so_item_id": order["items"][0]["id"], "inventory_stock_id": stock_id,
        "reserved_qty_mtr": 50, "reserved_pieces": 4,
    })

    await api.call("DELETE", "SALES", f"/sales-orders/{order['id']}", expected=204)

    stock = await api.get("STORES", f"/inventory/stock/{stock_id}")
    assert stock["status"] == "ACCEPTED"
    assert stock["quantity_mtr"] == 80
    assert stock["pieces"] == 10
    assert stock["reserved_for_so_id"] is None


async def test_stock_issue_against_reservation(api):
    stock_id = await api.accepted_stock("H-ISS", quantity=60)
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [60])
    other = await api.sales_order(customer["id"], [60])
    await api.reserve(order, 0, stock_id, 60)

    body = await api.post("STORES", "/inventory/stock-issues", {
        "sales_order_id": other["id"], "items": [{"inventory_stock_id": stock_id}],
    }, expected=400)
    assert "reserved for another sales order" in body["detail"]

    issue = await api.post("STORES", "/inventory/stock-issues", {
        "sales_order_id": order["id"], "items": [{"inventory_stock_id": stock_id}],
    })
    assert issue["issue_no"] == f"ISS/{FY}/00001"
    assert issue["items"][0]["quantity_mtr"] == 60
    assert issue["items"][0]["heat_no"] == "H-ISS"

    assert (await api.get("STORES", f"/inventory/stock/{stock_id}"))["status"] == "DISPATCHED"
    reservations = await api.get("SALES", f"/sales-orders/{order['id']}/reservations")
    assert reservations[0]["status"] == "DISPATCHED"

    issues = await api.get("SALES", "/inventory/stock-issues", params={"sales_order_id": order["id"]})
    assert issues["total"] == 1


async def test_stock_issue_needs_open_order(api):
    stock_id = await api.accepted_stock("H-CLOSED")
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [10])
    await api.patch("SALES", f"/sales-orders/{order['id']}", {"status": "CLOSED"})

    body = await api.post("STORES", "/inventory/stock-issues", {
        "sales_order_id": order["id"], "items": [{"inventory_stock_id": stock_id, "quantity_mtr": 10}],
    }, expected=400)
    assert "CLOSED" in body["detail"]


async def test_stock_issue_over_quantity(api):
    stock_id = await api.accepted_stock("H-OVER", quantity=20)
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [30])
    body = await api.post("STORES", "/inventory/stock-issues", {
        "sales_order_id": order["id"], "items": [{"inventory_stock_id": stock_id, "quantity_mtr": 25}],
    }, expected=400)
    assert "exceeds stock on hand" in body["detail"]
