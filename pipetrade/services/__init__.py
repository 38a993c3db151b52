# Services module
from pipetrade.services.auth_service import AuthService
from pipetrade.services.document_sequence_service import DocumentSequenceService
from pipetrade.services.master_service import MasterService

# Sales
from pipetrade.services.sales_service import SalesService
from pipetrade.services.reservation_service import StockReservationService

# Procurement / Stores / QC
from pipetrade.services.purchase_service import PurchaseService
from pipetrade.services.grn_service import GRNService
from pipetrade.services.quality_control_service import QualityControlService
from pipetrade.services.inventory_service import InventoryService

# Dispatch / Billing
from pipetrade.services.dispatch_service import DispatchService
from pipetrade.services.billing_service import BillingService
from pipetrade.services.traceability_service import TraceabilityService

__all__ = [
    "AuthService",
    "DocumentSequenceService",
    "MasterService",
    # Sales
    "SalesService",
    "StockReservationService",
    # Procurement / Stores / QC
    "PurchaseService",
    "GRNService",
    "QualityControlService",
    "InventoryService",
    # Dispatch / Billing
    "DispatchService",
    "BillingService",
    "TraceabilityService",
]
