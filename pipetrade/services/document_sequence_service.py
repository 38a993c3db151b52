"""
Document Sequence Service for sequential document numbers.

- Financial year based numbering (April-March)
- Counter restarts at 1 when the financial year changes
- Row-level locking (SELECT FOR UPDATE) so concurrent requests never
  share a number
- Format: {PREFIX}/{FY}/{SEQUENCE}, e.g. SO/2024-25/00001

USAGE:
    from pipetrade.services.document_sequence_service import DocumentSequenceService

    async def create_so(db: AsyncSession):
        service = DocumentSequenceService(db)
        so_no = await service.get_next_number(DocumentType.SALES_ORDER)
        # Returns: SO/2024-25/00001
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pipetrade.models.document_sequence import DocumentSequence, DocumentType, DOCUMENT_PREFIXES

logger = logging.getLogger(__name__)


# Document type metadata
DOCUMENT_METADATA = {
    DocumentType.ENQUIRY: "Enquiry",
    DocumentType.QUOTATION: "Quotation",
    DocumentType.SALES_ORDER: "Sales Order",
    DocumentType.PURCHASE_REQUISITION: "Purchase Requisition",
    DocumentType.PURCHASE_ORDER: "Purchase Order",
    DocumentType.GRN: "Goods Receipt Note",
    DocumentType.INSPECTION: "Inspection Report",
    DocumentType.NCR: "Non-Conformance Report",
    DocumentType.QC_RELEASE: "QC Release Note",
    DocumentType.PACKING_LIST: "Packing List",
    DocumentType.DISPATCH_NOTE: "Dispatch Note",
    DocumentType.INVOICE_DOMESTIC: "Tax Invoice",
    DocumentType.INVOICE_EXPORT: "Export Invoice",
    DocumentType.RECEIPT: "Payment Receipt",
    DocumentType.STOCK_ISSUE: "Stock Issue Slip",
}


def _normalize(document_type: str | DocumentType) -> DocumentType:
    try:
        return DocumentType(str(getattr(document_type, "value", document_type)).upper())
    except ValueError:
        valid_types = ", ".join(t.value for t in DocumentType)
        raise ValueError(f"Invalid document type '{document_type}'. Valid types: {valid_types}")


class DocumentSequenceService:
    """
    Service for generating document numbers.

    The sequence row is locked and incremented inside the caller's
    transaction; the number is only consumed if that transaction commits.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_or_create_sequence(self, doc_type: DocumentType, lock: bool = True) -> DocumentSequence:
        stmt = select(DocumentSequence).where(DocumentSequence.document_type == doc_type.value)
        if lock:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        sequence = result.scalar_one_or_none()

        if sequence is None:
            sequence = DocumentSequence(
                document_type=doc_type.value,
                prefix=DOCUMENT_PREFIXES[doc_type],
                financial_year=DocumentSequence.get_financial_year(),
                current_number=0,
                padding_length=5,
            )
            self.db.add(sequence)
            await self.db.flush()
            logger.info("Created document sequence for %s", doc_type.value)

        return sequence

    async def get_next_number(
        self,
        document_type: str | DocumentType,
        on: Optional[date] = None
    ) -> str:
        """
        Get next document number with atomic increment.

        Args:
            document_type: Document type (SALES_ORDER, GRN, ...)
            on: Document date, defaults to today; decides the financial year

        Returns:
            Formatted document number, e.g., SO/2024-25/00001

        Raises:
            ValueError: If document_type is invalid
        """
        doc_type = _normalize(document_type)
        financial_year = DocumentSequence.get_financial_year(on)

        sequence = await self._get_or_create_sequence(doc_type)
        if sequence.financial_year != financial_year:
            logger.info(
                "Financial year rolled over for %s: %s -> %s, counter reset",
                doc_type.value, sequence.financial_year, financial_year
            )
        number = sequence.get_next_number(financial_year)
        await self.db.flush()

        logger.debug("Generated %s number %s", doc_type.value, number)
        return number

    async def preview_next_number(
        self,
        document_type: str | DocumentType,
        on: Optional[date] = None
    ) -> str:
        """Preview the next number without consuming it."""
        doc_type = _normalize(document_type)
        financial_year = DocumentSequence.get_financial_year(on)

        result = await self.db.execute(
            select(DocumentSequence).where(DocumentSequence.document_type == doc_type.value)
        )
        sequence = result.scalar_one_or_none()
        if sequence is None:
            return f"{DOCUMENT_PREFIXES[doc_type]}/{financial_year}/00001"
        return sequence.preview_next_number(financial_year)

    async def list_sequences(self) -> List[DocumentSequence]:
        result = await self.db.execute(
            select(DocumentSequence).order_by(DocumentSequence.document_type)
        )
        return list(result.scalars().all())

    async def initialize_sequences(self) -> int:
        """Create a zeroed sequence for every document type that has none."""
        created = 0
        existing = {s.document_type for s in await self.list_sequences()}
        for doc_type in DocumentType:
            if doc_type.value in existing:
                continue
            self.db.add(DocumentSequence(
                document_type=doc_type.value,
                prefix=DOCUMENT_PREFIXES[doc_type],
                financial_year=DocumentSequence.get_financial_year(),
                current_number=0,
                padding_length=5,
            ))
            created += 1
        if created:
            await self.db.flush()
        return created
