"""
Document Sequence Model for sequential document numbers.

Format: {PREFIX}/{FY}/{SEQUENCE}
- SO/2024-25/00001   (Sales Order)
- NPS/2024-25/00012  (Quotation)
- INV/2024-25/00107  (Domestic Invoice)

One row per document type. The counter restarts at 1 when the
Indian financial year (April to March) rolls over.
"""

import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from pipetrade.database import Base
from pipetrade.db_types import UUIDType


class DocumentType(str, Enum):
    """Document types that use sequence numbering."""
    ENQUIRY = "ENQUIRY"
    QUOTATION = "QUOTATION"
    SALES_ORDER = "SALES_ORDER"
    PURCHASE_REQUISITION = "PURCHASE_REQUISITION"
    PURCHASE_ORDER = "PURCHASE_ORDER"
    GRN = "GRN"
    INSPECTION = "INSPECTION"
    NCR = "NCR"
    QC_RELEASE = "QC_RELEASE"
    PACKING_LIST = "PACKING_LIST"
    DISPATCH_NOTE = "DISPATCH_NOTE"
    INVOICE_DOMESTIC = "INVOICE_DOMESTIC"
    INVOICE_EXPORT = "INVOICE_EXPORT"
    RECEIPT = "RECEIPT"
    STOCK_ISSUE = "STOCK_ISSUE"


DOCUMENT_PREFIXES = {
    DocumentType.ENQUIRY: "ENQ",
    DocumentType.QUOTATION: "NPS",
    DocumentType.SALES_ORDER: "SO",
    DocumentType.PURCHASE_REQUISITION: "PR",
    DocumentType.PURCHASE_ORDER: "PO",
    DocumentType.GRN: "GRN",
    DocumentType.INSPECTION: "INS",
    DocumentType.NCR: "NCR",
    DocumentType.QC_RELEASE: "QCR",
    DocumentType.PACKING_LIST: "PL",
    DocumentType.DISPATCH_NOTE: "DN",
    DocumentType.INVOICE_DOMESTIC: "INV",
    DocumentType.INVOICE_EXPORT: "EXP",
    DocumentType.RECEIPT: "REC",
    DocumentType.STOCK_ISSUE: "ISS",
}


class DocumentSequence(Base):
    """
    Running counter for one document type.

    Example:
        document_type = "SALES_ORDER"
        financial_year = "2024-25"
        current_number = 42
        → Next number: SO/2024-25/00043
    """
    __tablename__ = "document_sequences"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    document_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        unique=True,
        index=True
    )
    prefix: Mapped[str] = mapped_column(String(10), nullable=False)

    # Financial Year (April-March)
    financial_year: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        comment="e.g., 2024-25"
    )

    current_number: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Last used sequence number"
    )

    padding_length: Mapped[int] = mapped_column(Integer, default=5)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def format_number(self, number: int) -> str:
        return f"{self.prefix}/{self.financial_year}/{str(number).zfill(self.padding_length)}"

    def get_next_number(self, financial_year: str) -> str:
        """
        Advance the counter and return the formatted number.

        NOTE: Increments current_number but does NOT commit. The caller
        owns the transaction so the number and the document land together.
        """
        if self.financial_year != financial_year:
            self.financial_year = financial_year
            self.current_number = 0
        self.current_number += 1
        return self.format_number(self.current_number)

    def preview_next_number(self, financial_year: str) -> str:
        """What the next number would be, without incrementing."""
        if self.financial_year != financial_year:
            return f"{self.prefix}/{financial_year}/{str(1).zfill(self.padding_length)}"
        return self.format_number(self.current_number + 1)

    @staticmethod
    def get_financial_year(on: Optional[date] = None) -> str:
        """
        Get the Indian financial year string for a date (today by default).

        - Jan 2025 → 2024-25
        - Apr 2025 → 2025-26
        """
        on = on or date.today()
        start_year = on.year if on.month >= 4 else on.year - 1
        return f"{start_year}-{(start_year + 1) % 100:02d}"

    def __repr__(self) -> str:
        return f"<DocumentSequence({self.document_type}/{self.financial_year}: {self.current_number})>"
