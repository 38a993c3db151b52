from fastapi import APIRouter

from pipetrade.api.v1.endpoints import (
    # Access Control
    auth,
    users,
    # Masters
    customers,
    vendors,
    # Sales
    enquiries,
    quotations,
    sales_orders,
    # Procurement
    purchase,
    grn,
    # Stores & Quality
    inventory,
    quality,
    # Dispatch & Billing
    dispatch,
    invoices,
    payments,
    # Reports
    traceability,
    document_sequences,
)

# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Access Control ====================
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentication"]
)
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["Users"]
)

# ==================== Masters ====================
api_router.include_router(
    customers.router,
    prefix="/customers",
    tags=["Customers"]
)
api_router.include_router(
    vendors.router,
    prefix="/vendors",
    tags=["Vendors"]
)

# ==================== Sales ====================
api_router.include_router(
    enquiries.router,
    prefix="/enquiries",
    tags=["Enquiries"]
)
api_router.include_router(
    quotations.router,
    prefix="/quotations",
    tags=["Quotations"]
)
api_router.include_router(
    sales_orders.router,
    prefix="/sales-orders",
    tags=["Sales Orders"]
)

# ==================== Procurement ====================
api_router.include_router(
    purchase.router,
    prefix="/purchase",
    tags=["Purchase/Procurement"]
)
api_router.include_router(
    grn.router,
    prefix="/grn",
    tags=["Goods Receipt Notes"]
)

# ==================== Stores & Quality ====================
api_router.include_router(
    inventory.router,
    prefix="/inventory",
    tags=["Inventory"]
)
api_router.include_router(
    quality.router,
    prefix="/quality",
    tags=["Quality Control"]
)

# ==================== Dispatch & Billing ====================
api_router.include_router(
    dispatch.router,
    prefix="/dispatch",
    tags=["Dispatch"]
)
api_router.include_router(
    invoices.router,
    prefix="/invoices",
    tags=["Invoices"]
)
api_router.include_router(
    payments.router,
    prefix="/payments",
    tags=["Payments"]
)

# ==================== Reports ====================
api_router.include_router(
    traceability.router,
    prefix="/traceability",
    tags=["Traceability"]
)
api_router.include_router(
    document_sequences.router,
    prefix="/document-sequences",
    tags=["Document Sequences"]
)
