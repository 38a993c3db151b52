"""Inspections, QC releases, stock status changes and NCRs."""

from pipetrade.models.document_sequence import DocumentSequence

FY = DocumentSequence.get_financial_year()


async def received_stock(api, heat_no="H-QC-1", quantity=50):
    vendor = await api.vendor(name=f"Vendor {heat_no}")
    po = await api.released_po(vendor["id"], quantity=quantity)
    grn = await api.receive(po["id"], [{"heat_no": heat_no, "received_qty_mtr": quantity}])
    return grn["stock_ids"][0], po, vendor


async def test_passed_inspection_accepts_stock(api):
    stock_id, _, _ = await received_stock(api)
    inspection = await api.inspect(stock_id, "PASS")
    assert inspection["inspection_no"] == f"INS/{FY}/00001"
    assert inspection["overall_result"] == "PASS"
    assert [p["s_no"] for p in inspection["parameters"]] == [1, 2]
    assert inspection["grn_item_id"] is not None

    stock = await api.get("QC", f"/inventory/stock/{stock_id}")
    assert stock["status"] == "ACCEPTED"


async def test_hold_then_pass_on_reinspection(api):
    stock_id, _, _ = await received_stock(api)
    inspection = await api.inspect(stock_id, "HOLD")
    assert inspection["overall_result"] == "HOLD"
    assert (await api.get("QC", f"/inventory/stock/{stock_id}"))["status"] == "HOLD"

    updated = await api.patch("QC", f"/quality/inspections/{inspection['id']}", {
        "parameters": [{"parameter_name": "Hydro test", "result": "PASS"}],
    })
    assert updated["overall_result"] == "PASS"
    assert len(updated["parameters"]) == 1
    assert (await api.get("QC", f"/inventory/stock/{stock_id}"))["status"] == "ACCEPTED"


async def test_failed_inspection_rejects_stock_and_raises_ncr(api):
    stock_id, po, vendor = await received_stock(api, heat_no="H-BAD")
    inspection = await api.inspect(stock_id, "FAIL")
    assert inspection["overall_result"] == "FAIL"
    assert (await api.get("QC", f"/inventory/stock/{stock_id}"))["status"] == "REJECTED"

    ncrs = await api.get("PURCHASE", "/quality/ncrs", params={"heat_no": "H-BAD"})
    assert ncrs["total"] == 1
    ncr = ncrs["items"][0]
    assert ncr["ncr_no"] == f"NCR/{FY}/00001"
    assert ncr["status"] == "OPEN"
    assert ncr["non_conformance_type"] == "REJECTION"
    assert ncr["inventory_stock_id"] == stock_id
    assert ncr["po_id"] == po["id"]
    assert ncr["vendor_id"] == vendor["id"]

    by_vendor = await api.get("QC", "/quality/ncrs", params={"vendor_id": vendor["id"], "status": "OPEN"})
    assert by_vendor["total"] == 1


async def test_inspection_needs_a_target(api):
    body = await api.post("QC", "/quality/inspections", {
        "parameters": [{"parameter_name": "Visual", "result": "PASS"}],
    }, expected=400)
    assert "Either inventory stock or GRN item" in body["detail"]


async def test_only_qc_inspects(api):
    stock_id, _, _ = await received_stock(api)
    await api.post("STORES", "/quality/inspections", {
        "inventory_stock_id": stock_id,
        "parameters": [{"parameter_name": "Visual", "result": "PASS"}],
    }, expected=403)


async def test_qc_release_needs_passed_inspection(api):
    stock_id, _, _ = await received_stock(api)
    held = await api.inspect(stock_id, "HOLD")
    body = await api.post("QC", "/quality/qc-releases", {
        "inspection_id": held["id"], "inventory_stock_id": stock_id,
    }, expected=400)
    assert "Only a passed inspection" in body["detail"]


async def test_qc_release_reject_raises_ncr(api):
    stock_id, _, _ = await received_stock(api, heat_no="H-REL")
    passed = await api.inspect(stock_id, "PASS")
    release = await api.post("QC", "/quality/qc-releases", {
        "inspection_id": passed["id"], "inventory_stock_id": stock_id, "decision": "REJECT",
        "remarks": "Customer spec needs NACE",
    })
    assert release["release_no"] == f"QCR/{FY}/00001"
    assert release["decision"] == "REJECT"
    assert (await api.get("QC", f"/inventory/stock/{stock_id}"))["status"] == "REJECTED"
    assert (await api.get("QC", "/quality/ncrs", params={"heat_no": "H-REL"}))["total"] == 1

    releases = await api.get("STORES", "/quality/qc-releases")
    assert releases["total"] == 1


async def test_stock_status_change_is_role_gated(api):
    stock_id, _, _ = await received_stock(api)
    body = await api.patch("STORES", f"/inventory/stock/{stock_id}", {"status": "ACCEPTED"}, expected=403)
    assert body["detail"] == "Only QC, Admin, or Management can change stock status"

    located = await api.patch("STORES", f"/inventory/stock/{stock_id}", {"location": "Yard B", "rack_no": "R-12"})
    assert located["location"] == "Yard B"
    assert located["status"] == "UNDER_INSPECTION"

    # QC may change status but not location
    await api.patch("QC", f"/inventory/stock/{stock_id}", {"rack_no": "R-13"}, expected=403)
    accepted = await api.patch("QC", f"/inventory/stock/{stock_id}", {"status": "ACCEPTED"})
    assert accepted["status"] == "ACCEPTED"


async def test_manual_rejection_raises_ncr(api):
    stock_id, _, _ = await received_stock(api, heat_no="H-MAN")
    await api.patch("MANAGEMENT", f"/inventory/stock/{stock_id}", {"status": "REJECTED"})
    ncrs = await api.get("QC", "/quality/ncrs", params={"heat_no": "H-MAN"})
    assert ncrs["total"] == 1


async def test_invalid_stock_transition(api):
    stock_id, _, _ = await received_stock(api)
    body = await api.patch("QC", f"/inventory/stock/{stock_id}", {"status": "RESERVED"}, expected=400)
    assert "Invalid status transition" in body["detail"]


async def test_ncr_lifecycle(api):
    stock_id, _, _ = await received_stock(api, heat_no="H-NCR")
    ncr = await api.post("QC", "/quality/ncrs", {
        "inventory_stock_id": stock_id,
        "heat_no": "H-NCR",
        "non_conformance_type": "DIMENSIONAL",
        "description": "OD out of tolerance on 3 pieces",
        "evidence_paths": ["ncr/h-ncr/od-gauge.jpg"],
    })
    assert ncr["status"] == "OPEN"
    assert ncr["evidence_paths"] == ["ncr/h-ncr/od-gauge.jpg"]
    path = f"/quality/ncrs/{ncr['id']}"

    # No skipping steps
    await api.patch("QC", path, {"status": "CLOSED"}, expected=400)
    await api.patch("QC", path, {"status": "UNDER_INVESTIGATION", "root_cause": "Mill rolling defect"})
    await api.patch("QC", path, {"status": "CORRECTIVE_ACTION_IN_PROGRESS"})

    body = await api.patch("QC", path, {"status": "CLOSED", "corrective_action": "Pieces cut back"}, expected=400)
    assert body["detail"] == "Cannot close NCR. Missing: preventive_action, disposition"

    closed = await api.patch("QC", path, {
        "status": "CLOSED",
        "corrective_action": "Pieces cut back",
        "preventive_action": "Vendor to gauge every bundle",
        "disposition": "Use as is after cut",
    })
    assert closed["status"] == "CLOSED"
    assert closed["closed_date"] is not None

    body = await api.patch("QC", path, {"status": "VERIFIED"}, expected=403)
    assert body["detail"] == "Only Management or Admin can verify an NCR"

    verified = await api.patch("MANAGEMENT", path, {"status": "VERIFIED"})
    assert verified["status"] == "VERIFIED"
    assert verified["verified_by_id"] is not None


async def test_management_cannot_edit_ncr_fields(api):
    stock_id, _, _ = await received_stock(api)
    ncr = await api.post("QC", "/quality/ncrs", {"inventory_stock_id": stock_id, "description": "Scratches"})
    await api.patch("MANAGEMENT", f"/quality/ncrs/{ncr['id']}", {"root_cause": "Handling"}, expected=403)
