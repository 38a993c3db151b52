from pipetrade.models.user import User, Role
from pipetrade.models.master import Customer, Vendor
from pipetrade.models.document_sequence import DocumentSequence, DocumentType, DOCUMENT_PREFIXES
from pipetrade.models.sales import (
    Enquiry, EnquiryItem, EnquiryStatus,
    Quotation, QuotationItem, QuotationTerm, QuotationStatus, QuotationType,
    SalesOrder, SalesOrderItem, SOStatus, POAcceptanceStatus,
)
from pipetrade.models.purchase import (
    PurchaseRequisition, PurchaseRequisitionItem, RequisitionStatus,
    PurchaseOrder, PurchaseOrderItem, POStatus,
    GoodsReceiptNote, GRNItem, MTCType,
)
from pipetrade.models.inventory import (
    InventoryStock, StockStatus,
    StockReservation, ReservationStatus,
    StockIssue, StockIssueItem,
)
from pipetrade.models.quality_control import (
    Inspection, InspectionParameter, InspectionResult, ParameterType,
    QCRelease, ReleaseDecision,
    NCR, NCRStatus, NonConformanceType,
)
from pipetrade.models.dispatch import PackingList, PackingListItem, DispatchNote
from pipetrade.models.billing import (
    Invoice, InvoiceItem, InvoiceType, InvoiceStatus,
    PaymentReceipt, PaymentMode,
)

__all__ = [
    "User", "Role",
    "Customer", "Vendor",
    "DocumentSequence", "DocumentType", "DOCUMENT_PREFIXES",
    "Enquiry", "EnquiryItem", "EnquiryStatus",
    "Quotation", "QuotationItem", "QuotationTerm", "QuotationStatus", "QuotationType",
    "SalesOrder", "SalesOrderItem", "SOStatus", "POAcceptanceStatus",
    "PurchaseRequisition", "PurchaseRequisitionItem", "RequisitionStatus",
    "PurchaseOrder", "PurchaseOrderItem", "POStatus",
    "GoodsReceiptNote", "GRNItem", "MTCType",
    "InventoryStock", "StockStatus", "StockReservation", "ReservationStatus",
    "StockIssue", "StockIssueItem",
    "Inspection", "InspectionParameter", "InspectionResult", "ParameterType",
    "QCRelease", "ReleaseDecision", "NCR", "NCRStatus", "NonConformanceType",
    "PackingList", "PackingListItem", "DispatchNote",
    "Invoice", "InvoiceItem", "InvoiceType", "InvoiceStatus",
    "PaymentReceipt", "PaymentMode",
]
