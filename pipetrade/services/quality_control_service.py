"""
Quality Control Service.

Inspections decide what happens to a received heat:
- PASS  -> stock ACCEPTED
- HOLD  -> stock HOLD
- FAIL  -> stock REJECTED, and an NCR is raised automatically

QC releases record the final accept/reject decision on a passed
inspection. NCRs follow OPEN -> UNDER_INVESTIGATION ->
CORRECTIVE_ACTION_IN_PROGRESS -> CLOSED -> VERIFIED.
"""
import logging
import uuid
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from pipetrade.models.document_sequence import DocumentType
from pipetrade.models.inventory import InventoryStock, StockStatus
from pipetrade.models.purchase import GRNItem, GoodsReceiptNote
from pipetrade.models.quality_control import (
    Inspection, InspectionParameter, InspectionResult,
    QCRelease, ReleaseDecision,
    NCR, NCRStatus, NonConformanceType,
)
from pipetrade.models.user import Role, User
from pipetrade.schemas.quality_control import (
    InspectionCreate, InspectionUpdate, InspectionParameterCreate,
    QCReleaseCreate, NCRCreate, NCRUpdate,
)
from pipetrade.services.business_rules import overall_inspection_result, ncr_closure_missing_fields
from pipetrade.services.document_sequence_service import DocumentSequenceService
from pipetrade.services.state_machine import ncr_machine, stock_machine

logger = logging.getLogger(__name__)

INSPECTION_STOCK_STATUS = {
    InspectionResult.PASS.value: StockStatus.ACCEPTED.value,
    InspectionResult.HOLD.value: StockStatus.HOLD.value,
    InspectionResult.FAIL.value: StockStatus.REJECTED.value,
}

RELEASE_STOCK_STATUS = {
    ReleaseDecision.ACCEPT.value: StockStatus.ACCEPTED.value,
    ReleaseDecision.REJECT.value: StockStatus.REJECTED.value,
}

NCR_VERIFIER_ROLES = (Role.MANAGEMENT.value, Role.ADMIN.value)


class QualityControlService:
    """Inspections, QC releases and NCRs."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.numbers = DocumentSequenceService(db)

    # ==================== Stock status ====================

    async def _get_stock(self, stock_id: uuid.UUID) -> InventoryStock:
        stock = await self.db.get(InventoryStock, stock_id)
        if not stock:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stock not found")
        return stock

    async def create_rejection_ncr(self, stock: InventoryStock, user: Optional[User] = None) -> NCR:
        """
        Raise an OPEN rejection NCR for a heat.

        PO and vendor are taken from the GRN the heat came in on.
        Does not commit; the caller owns the transaction.
        """
        po_id = vendor_id = None
        if stock.grn_item_id:
            row = (await self.db.execute(
                select(GoodsReceiptNote.po_id, GoodsReceiptNote.vendor_id)
                .join(GRNItem, GRNItem.grn_id == GoodsReceiptNote.id)
                .where(GRNItem.id == stock.grn_item_id)
            )).first()
            if row:
                po_id, vendor_id = row

        ncr = NCR(
            ncr_no=await self.numbers.get_next_number(DocumentType.NCR),
            ncr_date=date.today(),
            grn_item_id=stock.grn_item_id,
            inventory_stock_id=stock.id,
            heat_no=stock.heat_no,
            po_id=po_id,
            vendor_id=vendor_id,
            non_conformance_type=NonConformanceType.REJECTION.value,
            description=f"Stock rejected during quality inspection. Heat No: {stock.heat_no}",
            evidence_paths=[],
            status=NCRStatus.OPEN.value,
            created_by_id=user.id if user else None,
        )
        self.db.add(ncr)
        logger.info("Auto-created %s for rejected heat %s", ncr.ncr_no, stock.heat_no)
        return ncr

    async def apply_stock_status(
        self,
        stock: InventoryStock,
        new_status: str,
        user: Optional[User] = None,
    ) -> Optional[NCR]:
        """
        Move a heat to a new status through the stock table.

        Returns the NCR raised when the heat ends up REJECTED.
        """
        if stock.status == new_status:
            return None
        stock_machine.validate_transition(stock.status, new_status)
        logger.info("Heat %s: %s -> %s", stock.heat_no, stock.status, new_status)
        stock.status = new_status
        if new_status == StockStatus.REJECTED.value:
            return await self.create_rejection_ncr(stock, user)
        return None

    # ==================== Inspections ====================

    async def list_inspections(
        self,
        inventory_stock_id: Optional[uuid.UUID] = None,
        overall_result: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[Inspection], int]:
        query = select(Inspection)
        if inventory_stock_id:
            query = query.where(Inspection.inventory_stock_id == inventory_stock_id)
        if overall_result:
            query = query.where(Inspection.overall_result == overall_result)

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(Inspection.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_inspection(self, inspection_id: uuid.UUID) -> Inspection:
        inspection = await self.db.get(Inspection, inspection_id)
        if not inspection:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inspection not found")
        return inspection

    @staticmethod
    def _build_parameters(parameters: List[InspectionParameterCreate]) -> List[InspectionParameter]:
        return [
            InspectionParameter(
                s_no=index,
                parameter_name=param.parameter_name,
                parameter_type=param.parameter_type.value,
                result_value=param.result_value,
                standard_value=param.standard_value,
                tolerance=param.tolerance,
                result=param.result.value,
                remarks=param.remarks,
            )
            for index, param in enumerate(parameters, start=1)
        ]

    async def create_inspection(self, data: InspectionCreate, user: User) -> Inspection:
        if not data.inventory_stock_id and not data.grn_item_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Either inventory stock or GRN item is required"
            )

        stock = None
        if data.inventory_stock_id:
            stock = await self._get_stock(data.inventory_stock_id)
        if data.grn_item_id and not await self.db.get(GRNItem, data.grn_item_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="GRN item not found")

        parameters = self._build_parameters(data.parameters)
        inspection = Inspection(
            inspection_no=await self.numbers.get_next_number(DocumentType.INSPECTION),
            inspection_date=data.inspection_date or date.today(),
            inventory_stock_id=data.inventory_stock_id,
            grn_item_id=data.grn_item_id or (stock.grn_item_id if stock else None),
            inspector_id=user.id,
            overall_result=overall_inspection_result(p.result for p in parameters),
            remarks=data.remarks,
            parameters=parameters,
        )
        self.db.add(inspection)

        if stock:
            await self.apply_stock_status(stock, INSPECTION_STOCK_STATUS[inspection.overall_result], user)

        await self.db.commit()
        await self.db.refresh(inspection)
        logger.info("Created %s: %s", inspection.inspection_no, inspection.overall_result)
        return inspection

    async def update_inspection(self, inspection_id: uuid.UUID, data: InspectionUpdate, user: User) -> Inspection:
        """Replace parameters (if sent) and re-derive the result and stock status."""
        inspection = await self.get_inspection(inspection_id)
        update_data = data.model_dump(exclude_unset=True)

        if "remarks" in update_data:
            inspection.remarks = data.remarks

        if data.parameters:
            inspection.parameters.clear()
            await self.db.flush()
            inspection.parameters.extend(self._build_parameters(data.parameters))
            new_result = overall_inspection_result(p.result.value for p in data.parameters)
            if new_result != inspection.overall_result:
                logger.info("%s: %s -> %s", inspection.inspection_no, inspection.overall_result, new_result)
            inspection.overall_result = new_result

            if inspection.inventory_stock_id:
                stock = await self._get_stock(inspection.inventory_stock_id)
                await self.apply_stock_status(stock, INSPECTION_STOCK_STATUS[new_result], user)

        await self.db.commit()
        await self.db.refresh(inspection)
        return inspection

    # ==================== QC Release ====================

    async def list_releases(self, skip: int = 0, limit: int = 100) -> Tuple[List[QCRelease], int]:
        query = select(QCRelease)
        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(QCRelease.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def create_release(self, data: QCReleaseCreate, user: User) -> QCRelease:
        inspection = await self.get_inspection(data.inspection_id)
        if inspection.overall_result != InspectionResult.PASS.value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Only a passed inspection can be released (result is {inspection.overall_result})"
            )
        stock = await self._get_stock(data.inventory_stock_id)

        release = QCRelease(
            release_no=await self.numbers.get_next_number(DocumentType.QC_RELEASE),
            release_date=date.today(),
            inspection_id=inspection.id,
            inventory_stock_id=stock.id,
            decision=data.decision.value,
            released_by_id=user.id,
            remarks=data.remarks,
        )
        self.db.add(release)
        await self.apply_stock_status(stock, RELEASE_STOCK_STATUS[release.decision], user)

        await self.db.commit()
        await self.db.refresh(release)
        logger.info("Created %s for heat %s: %s", release.release_no, stock.heat_no, release.decision)
        return release

    # ==================== NCR ====================

    async def list_ncrs(
        self,
        ncr_status: Optional[str] = None,
        vendor_id: Optional[uuid.UUID] = None,
        heat_no: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[NCR], int]:
        query = select(NCR)
        if ncr_status:
            query = query.where(NCR.status == ncr_status)
        if vendor_id:
            query = query.where(NCR.vendor_id == vendor_id)
        if heat_no:
            query = query.where(NCR.heat_no == heat_no)

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.db.execute(
            query.order_by(NCR.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_ncr(self, ncr_id: uuid.UUID) -> NCR:
        ncr = await self.db.get(NCR, ncr_id)
        if not ncr:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="NCR not found")
        return ncr

    async def create_ncr(self, data: NCRCreate, user: User) -> NCR:
        values = data.model_dump()
        if data.non_conformance_type:
            values["non_conformance_type"] = data.non_conformance_type.value

        ncr = NCR(
            **values,
            ncr_no=await self.numbers.get_next_number(DocumentType.NCR),
            ncr_date=date.today(),
            status=NCRStatus.OPEN.value,
            created_by_id=user.id,
        )
        self.db.add(ncr)
        await self.db.commit()
        await self.db.refresh(ncr)
        logger.info("Created %s", ncr.ncr_no)
        return ncr

    async def update_ncr(self, ncr_id: uuid.UUID, data: NCRUpdate, user: User) -> NCR:
        ncr = await self.get_ncr(ncr_id)
        update_data = data.model_dump(exclude_unset=True)
        new_status = update_data.pop("status", None)

        for field, value in update_data.items():
            if field == "non_conformance_type" and value is not None:
                value = value.value
            setattr(ncr, field, value)

        if new_status and new_status != ncr.status:
            new_status = new_status.value
            ncr_machine.validate_transition(ncr.status, new_status)

            if new_status == NCRStatus.CLOSED.value:
                missing = ncr_closure_missing_fields({
                    "root_cause": ncr.root_cause,
                    "corrective_action": ncr.corrective_action,
                    "preventive_action": ncr.preventive_action,
                    "disposition": ncr.disposition,
                })
                if missing:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Cannot close NCR. Missing: {', '.join(missing)}"
                    )
                ncr.closed_date = datetime.now(timezone.utc)
                ncr.closed_by_id = user.id

            if new_status == NCRStatus.VERIFIED.value:
                if user.role not in NCR_VERIFIER_ROLES:
                    raise HTTPException(
                        status_code=status.HTTP_403_FORBIDDEN,
                        detail="Only Management or Admin can verify an NCR"
                    )
                ncr.verified_date = datetime.now(timezone.utc)
                ncr.verified_by_id = user.id

            logger.info("%s: %s -> %s", ncr.ncr_no, ncr.status, new_status)
            ncr.status = new_status

        await self.db.commit()
        await self.db.refresh(ncr)
        return ncr
