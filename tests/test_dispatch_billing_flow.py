"""Packing lists, dispatch notes, invoices and payment receipts."""

from pipetrade.models.document_sequence import DocumentSequence

FY = DocumentSequence.get_financial_year()


async def reserved_order(api, lines):
    """A sales order with each line fully reserved against its own heat."""
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [qty for _, qty in lines])
    stock_ids = []
    for index, (heat_no, qty) in enumerate(lines):
        stock_id = await api.accepted_stock(heat_no, quantity=qty)
        await api.reserve(order, index, stock_id, qty)
        stock_ids.append(stock_id)
    return order, stock_ids


async def pack(api, order, stock_id, qty, role="STORES", expected=201):
    return await api.post(role, "/dispatch/packing-lists", {
        "sales_order_id": order["id"],
        "items": [{"inventory_stock_id": stock_id, "quantity_mtr": qty, "bundle_no": "B-1"}],
    }, expected=expected)


async def test_dispatch_rolls_up_sales_order(api):
    order, (first, second) = await reserved_order(api, [("H-D1", 100), ("H-D2", 50)])

    packing_list = await pack(api, order, first, 100)
    assert packing_list["pl_no"] == f"PL/{FY}/00001"
    assert packing_list["items"][0]["heat_no"] == "H-D1"
    assert packing_list["items"][0]["material"] == "ASTM A106 Gr.B"

    note = await api.post("STORES", "/dispatch/dispatch-notes", {
        "packing_list_id": packing_list["id"],
        "sales_order_id": order["id"],
        "vehicle_no": "MH-04-AB-1234",
        "transporter": "VRL Logistics",
    })
    assert note["dn_no"] == f"DN/{FY}/00001"
    assert note["so_status"] == "PARTIALLY_DISPATCHED"
    assert (await api.get("STORES", f"/inventory/stock/{first}"))["status"] == "DISPATCHED"
    assert (await api.get("STORES", f"/inventory/stock/{second}"))["status"] == "RESERVED"

    packing_list = await pack(api, order, second, 50)
    note = await api.post("STORES", "/dispatch/dispatch-notes", {
        "packing_list_id": packing_list["id"], "sales_order_id": order["id"],
    })
    assert note["dn_no"] == f"DN/{FY}/00002"
    assert note["so_status"] == "FULLY_DISPATCHED"

    reservations = await api.get("SALES", f"/sales-orders/{order['id']}/reservations")
    assert {r["status"] for r in reservations} == {"DISPATCHED"}

    notes = await api.get("ACCOUNTS", "/dispatch/dispatch-notes", params={"sales_order_id": order["id"]})
    assert notes["total"] == 2


async def test_only_released_stock_is_packed(api):
    vendor = await api.vendor()
    po = await api.released_po(vendor["id"], quantity=20)
    grn = await api.receive(po["id"], [{"heat_no": "H-RAW", "received_qty_mtr": 20}])
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [20])

    body = await pack(api, order, grn["stock_ids"][0], 20, expected=400)
    assert "only RESERVED or ACCEPTED stock can be packed" in body["detail"]


async def test_heat_reserved_for_another_order_stays_put(api):
    owner, (stock_id,) = await reserved_order(api, [("H-OTHER", 40)])
    customer = await api.customer(name="Larsen Projects")
    other = await api.sales_order(customer["id"], [40])

    body = await pack(api, other, stock_id, 40, expected=400)
    assert body["detail"] == "Heat H-OTHER is reserved for another sales order"

    # A packing list only ships against its own order
    packing_list = await pack(api, owner, stock_id, 40)
    body = await api.post("STORES", "/dispatch/dispatch-notes", {
        "packing_list_id": packing_list["id"], "sales_order_id": other["id"],
    }, expected=400)
    assert body["detail"] == f"Packing list {packing_list['pl_no']} belongs to another sales order"

    reservations = await api.get("SALES", f"/sales-orders/{owner['id']}/reservations")
    assert [r["status"] for r in reservations] == ["RESERVED"]
    assert (await api.get("STORES", f"/inventory/stock/{stock_id}"))["status"] == "RESERVED"
    assert (await api.get("SALES", f"/sales-orders/{other['id']}"))["status"] == "OPEN"


async def test_packing_list_ships_once(api):
    order, (first, _) = await reserved_order(api, [("H-ONCE", 30), ("H-LATER", 20)])
    packing_list = await pack(api, order, first, 30)
    payload = {"packing_list_id": packing_list["id"], "sales_order_id": order["id"]}

    note = await api.post("STORES", "/dispatch/dispatch-notes", payload)
    body = await api.post("STORES", "/dispatch/dispatch-notes", payload, expected=400)
    assert body["detail"] == f"Packing list {packing_list['pl_no']} was already dispatched on {note['dn_no']}"

    # Dispatched heats cannot go out again on a fresh packing list either
    repacked = await pack(api, order, first, 30, expected=400)
    assert "only RESERVED or ACCEPTED stock can be packed" in repacked["detail"]

    notes = await api.get("STORES", "/dispatch/dispatch-notes", params={"sales_order_id": order["id"]})
    assert notes["total"] == 1
    preview = await api.get("STORES", "/document-sequences/DISPATCH_NOTE/preview")
    assert preview["next_number"] == f"DN/{FY}/00002"


async def test_dispatch_permissions(api):
    order, (stock_id,) = await reserved_order(api, [("H-P", 30)])
    await pack(api, order, stock_id, 30, role="SALES", expected=403)
    listing = await api.get("SALES", "/dispatch/packing-lists")
    assert listing["total"] == 0


def invoice_payload(order, customer_id, quantity=100, rate=1000, **extra):
    return {
        "sales_order_id": order["id"],
        "customer_id": customer_id,
        "items": [{
            "description": 'Seamless Pipe 2" ASTM A106 Gr.B',
            "heat_no": "H-INV",
            "hsn_code": "7304",
            "quantity": quantity,
            "rate": rate,
            "tax_rate": 18,
        }],
        **extra,
    }


async def test_intra_state_invoice_splits_gst(api):
    customer = await api.customer(state="Maharashtra")
    order = await api.sales_order(customer["id"], [100])
    invoice = await api.post("ACCOUNTS", "/invoices", invoice_payload(order, customer["id"]))

    assert invoice["invoice_no"] == f"INV/{FY}/00001"
    assert invoice["status"] == "DRAFT"
    assert invoice["subtotal"] == 100000
    assert invoice["cgst_amount"] == 9000
    assert invoice["sgst_amount"] == 9000
    assert invoice["igst_amount"] == 0
    assert invoice["total_amount"] == 118000
    assert invoice["amount_in_words"] == "Rupees One Lakh Eighteen Thousand Only"
    assert invoice["customer"]["name"] == customer["name"]


async def test_inter_state_invoice_uses_igst(api):
    customer = await api.customer(name="Adani Ports", state="Gujarat")
    order = await api.sales_order(customer["id"], [10])
    invoice = await api.post("ACCOUNTS", "/invoices", invoice_payload(order, customer["id"], quantity=10))
    assert invoice["cgst_amount"] == 0
    assert invoice["igst_amount"] == 1800
    assert invoice["total_amount"] == 11800


async def test_export_invoice_has_no_gst(api):
    customer = await api.customer(name="Gulf Piping FZE", state=None)
    order = await api.sales_order(customer["id"], [10])
    invoice = await api.post("ACCOUNTS", "/invoices", invoice_payload(
        order, customer["id"], quantity=10, rate=150, invoice_type="EXPORT", currency="usd",
    ))
    assert invoice["invoice_no"] == f"EXP/{FY}/00001"
    assert invoice["currency"] == "USD"
    assert invoice["total_amount"] == 1500
    assert invoice["amount_in_words"] == "US Dollars One Thousand Five Hundred Only"

    # Export numbering does not consume domestic numbers
    preview = await api.get("ACCOUNTS", "/document-sequences/INVOICE_DOMESTIC/preview")
    assert preview["next_number"] == f"INV/{FY}/00001"


async def test_invoices_are_never_deleted(api):
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [5])
    invoice = await api.post("ACCOUNTS", "/invoices", invoice_payload(order, customer["id"], quantity=5))

    body = await api.call("DELETE", "ADMIN", f"/invoices/{invoice['id']}", expected=400)
    assert body["detail"].endswith("cannot be deleted. Cancel it instead.")
    await api.call("DELETE", "ACCOUNTS", f"/invoices/{invoice['id']}", expected=403)


async def test_invoice_permissions(api):
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [5])
    await api.post("SALES", "/invoices", invoice_payload(order, customer["id"]), expected=403)
    listing = await api.get("SALES", "/invoices", params={"customer_id": customer["id"]})
    assert listing["total"] == 0


async def test_payments_roll_up_invoice(api):
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [100])
    invoice = await api.post("ACCOUNTS", "/invoices", invoice_payload(order, customer["id"]))

    first = await api.post("ACCOUNTS", "/payments", {
        "invoice_id": invoice["id"],
        "customer_id": customer["id"],
        "amount": 100000,
        "tds_amount": 10000,
        "payment_mode": "RTGS",
        "reference_no": "UTR0001",
    })
    assert first["receipt_no"] == f"REC/{FY}/00001"
    assert first["invoice_status"] == "PARTIALLY_PAID"
    assert first["total_paid"] == 110000

    second = await api.post("ACCOUNTS", "/payments", {
        "invoice_id": invoice["id"], "customer_id": customer["id"], "amount": 8000,
    })
    assert second["invoice_status"] == "PAID"
    assert second["total_paid"] == 118000
    assert (await api.get("ACCOUNTS", f"/invoices/{invoice['id']}"))["status"] == "PAID"

    body = await api.post("ACCOUNTS", "/payments", {
        "invoice_id": invoice["id"], "customer_id": customer["id"], "amount": 1,
    }, expected=400)
    assert body["detail"] == "Cannot record a payment against a PAID invoice"

    receipts = await api.get("MANAGEMENT", "/payments", params={"invoice_id": invoice["id"]})
    assert receipts["total"] == 2


async def test_no_payment_against_cancelled_invoice(api):
    customer = await api.customer()
    order = await api.sales_order(customer["id"], [5])
    invoice = await api.post("ACCOUNTS", "/invoices", invoice_payload(order, customer["id"], quantity=5))
    cancelled = await api.patch("ACCOUNTS", f"/invoices/{invoice['id']}", {"status": "CANCELLED"})
    assert cancelled["status"] == "CANCELLED"

    await api.post("ACCOUNTS", "/payments", {
        "invoice_id": invoice["id"], "customer_id": customer["id"], "amount": 100,
    }, expected=400)


async def test_sales_cannot_see_payments(api):
    await api.get("SALES", "/payments", expected=403)
