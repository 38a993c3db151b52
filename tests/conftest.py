"""Shared fixtures: a throwaway SQLite database, one user per role and an in-process client."""

import os
import tempfile
from typing import Any, Dict, List, Optional

_DB_DIR = tempfile.mkdtemp(prefix="pipetrade-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/pipetrade_test.db"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["DEBUG"] = "false"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from pipetrade.core.security import create_access_token, get_password_hash  # noqa: E402
from pipetrade.database import Base, async_session_factory, engine  # noqa: E402
from pipetrade.main import app  # noqa: E402
from pipetrade.models.user import Role, User  # noqa: E402

TEST_PASSWORD = "Secret@123"
PASSWORD_HASH = get_password_hash(TEST_PASSWORD)

API = "/api/v1"


@pytest.fixture
async def db_tables():
    """Fresh tables for every test; pooled connections are closed on the test's own loop."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(db_tables):
    async with async_session_factory() as session:
        yield session


@pytest.fixture
async def users(db_tables) -> Dict[str, User]:
    """One active user per role, keyed by role name."""
    created = {}
    async with async_session_factory() as session:
        for role in Role:
            user = User(
                email=f"{role.value.lower()}@pipetrade.in",
                name=f"{role.value.title()} User",
                password_hash=PASSWORD_HASH,
                role=role.value,
                is_active=True,
            )
            session.add(user)
            created[role.value] = user
        await session.commit()
    return created


@pytest.fixture
def headers(users) -> Dict[str, Dict[str, str]]:
    """Bearer headers keyed by role name."""
    return {
        role: {
            "Authorization": "Bearer " + create_access_token(
                subject=user.id, additional_claims={"email": user.email, "role": user.role}
            )
        }
        for role, user in users.items()
    }


@pytest.fixture
async def client(db_tables):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class Api:
    """Thin helper over the client that drives whole document flows."""

    def __init__(self, client: AsyncClient, headers: Dict[str, Dict[str, str]]):
        self.client = client
        self.headers = headers

    async def call(
        self,
        method: str,
        role: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        expected: int = 200,
    ) -> Any:
        response = await self.client.request(
            method, API + path, json=json, params=params, headers=self.headers[role]
        )
        assert response.status_code == expected, response.text
        if response.status_code == 204:
            return None
        return response.json()

    async def get(self, role: str, path: str, **kwargs) -> Any:
        return await self.call("GET", role, path, **kwargs)

    async def post(self, role: str, path: str, json: Any = None, expected: int = 201, **kwargs) -> Any:
        return await self.call("POST", role, path, json=json, expected=expected, **kwargs)

    async def patch(self, role: str, path: str, json: Any, expected: int = 200) -> Any:
        return await self.call("PATCH", role, path, json=json, expected=expected)

    # ---- masters ----

    async def customer(self, name: str = "Reliance Projects", state: str = "Maharashtra") -> dict:
        return await self.post("ADMIN", "/customers", {"name": name, "state": state, "city": "Mumbai"})

    async def vendor(self, name: str = "Maharashtra Seamless Ltd", approve: bool = True) -> dict:
        vendor = await self.post("ADMIN", "/vendors", {"name": name, "state": "Maharashtra"})
        if approve:
            vendor = await self.post("ADMIN", f"/vendors/{vendor['id']}/approve", expected=200)
        return vendor

    # ---- procurement ----

    async def released_po(self, vendor_id: str, quantity: float = 100, unit_rate: float = 500, **item) -> dict:
        po = await self.post("PURCHASE", "/purchase/orders", {
            "vendor_id": vendor_id,
            "items": [{
                "product": item.get("product", "Seamless Pipe"),
                "material": item.get("material", "ASTM A106 Gr.B"),
                "size_label": item.get("size_label", '2"'),
                "quantity": quantity,
                "unit_rate": unit_rate,
            }],
        })
        return await self.patch("PURCHASE", f"/purchase/orders/{po['id']}", {"status": "OPEN"})

    async def receive(self, po_id: str, heats: List[dict]) -> dict:
        items = [
            {
                "product": "Seamless Pipe",
                "material": "ASTM A106 Gr.B",
                "size_label": '2"',
                "pieces": 10,
                **heat,
            }
            for heat in heats
        ]
        return await self.post("STORES", "/grn", {"po_id": po_id, "items": items})

    async def inspect(self, stock_id: str, result: str = "PASS") -> dict:
        return await self.post("QC", "/quality/inspections", {
            "inventory_stock_id": stock_id,
            "parameters": [
                {"parameter_name": "Visual", "result": "PASS"},
                {"parameter_name": "Hydro test", "result": result},
            ],
        })

    async def accepted_stock(
        self,
        heat_no: str,
        quantity: float = 100,
        mtc_date: Optional[str] = None,
        vendor_id: Optional[str] = None,
    ) -> str:
        """Vendor -> PO -> GRN -> passed inspection. Returns the ACCEPTED stock id."""
        if vendor_id is None:
            vendor_id = (await self.vendor(name=f"Vendor {heat_no}"))["id"]
        po = await self.released_po(vendor_id, quantity=quantity)
        grn = await self.receive(po["id"], [{"heat_no": heat_no, "received_qty_mtr": quantity, "mtc_date": mtc_date}])
        stock_id = grn["stock_ids"][0]
        await self.inspect(stock_id)
        return stock_id

    # ---- sales ----

    async def sales_order(self, customer_id: str, quantities: List[float], unit_rate: float = 1000) -> dict:
        return await self.post("SALES", "/sales-orders", {
            "customer_id": customer_id,
            "customer_po_no": "CPO-7781",
            "items": [
                {
                    "product": "Seamless Pipe",
                    "material": "ASTM A106 Gr.B",
                    "size_label": '2"',
                    "quantity": qty,
                    "unit_rate": unit_rate,
                }
                for qty in quantities
            ],
        })

    async def reserve(self, so: dict, line: int, stock_id: str, qty: float) -> dict:
        return await self.post("SALES", f"/sales-orders/{so['id']}/reserve", {
            "so_item_id": so["items"][line]["id"],
            "inventory_stock_id": stock_id,
            "reserved_qty_mtr": qty,
        })


@pytest.fixture
def api(client, headers) -> Api:
    return Api(client, headers)
