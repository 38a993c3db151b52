"""Customer and vendor masters."""


async def test_customer_crud(api):
    customer = await api.customer(name="Larsen Infra")
    assert customer["country"] == "India"
    assert customer["is_active"] is True

    updated = await api.patch("ADMIN", f"/customers/{customer['id']}", {"gst_no": "27AAACL0140P1ZV"})
    assert updated["gst_no"] == "27AAACL0140P1ZV"

    found = await api.get("SALES", "/customers", params={"search": "27AAACL"})
    assert found["total"] == 1
    assert found["items"][0]["name"] == "Larsen Infra"


async def test_customer_delete_is_soft(api):
    customer = await api.customer()
    await api.call("DELETE", "ADMIN", f"/customers/{customer['id']}", expected=204)

    fetched = await api.get("SALES", f"/customers/{customer['id']}")
    assert fetched["is_active"] is False
    inactive = await api.get("SALES", "/customers", params={"is_active": False})
    assert [c["id"] for c in inactive["items"]] == [customer["id"]]


async def test_only_admin_maintains_masters(api):
    await api.post("MANAGEMENT", "/vendors", {"name": "Jindal"}, expected=403)
    customer = await api.customer()
    await api.patch("SALES", f"/customers/{customer['id']}", {"city": "Pune"}, expected=403)


async def test_vendor_starts_unapproved(api):
    vendor = await api.vendor(approve=False)
    assert vendor["is_approved"] is False

    approved = await api.post("ADMIN", f"/vendors/{vendor['id']}/approve", expected=200)
    assert approved["is_approved"] is True
    assert approved["approved_date"] is not None


async def test_list_pagination(api):
    for name in ("Alpha Pipes", "Beta Pipes", "Gamma Pipes"):
        await api.customer(name=name)
    page = await api.get("QC", "/customers", params={"skip": 2, "limit": 2})
    assert page["total"] == 3
    assert page["page"] == 2
    assert page["pages"] == 2
    assert [c["name"] for c in page["items"]] == ["Gamma Pipes"]


async def test_unknown_customer_is_404(api):
    body = await api.get("ADMIN", "/customers/00000000-0000-0000-0000-000000000000", expected=404)
    assert body["detail"] == "Customer not found"
