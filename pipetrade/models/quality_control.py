"""
Quality Control Models.

- Inspection: parameter-wise inspection of a received heat
- QCRelease: release (or reject) decision on a passed inspection
- NCR: non-conformance report with a closure/verification workflow
"""
import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, List

from sqlalchemy import String, Integer, DateTime, Date, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pipetrade.database import Base
from pipetrade.db_types import UUIDType, JSONType


# ============================================================================
# ENUMS
# ============================================================================

class InspectionResult(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    HOLD = "HOLD"


class ParameterType(str, Enum):
    PASS_FAIL = "PASS_FAIL"
    NUMERIC = "NUMERIC"
    TEXT = "TEXT"


class ReleaseDecision(str, Enum):
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"


class NCRStatus(str, Enum):
    OPEN = "OPEN"
    UNDER_INVESTIGATION = "UNDER_INVESTIGATION"
    CORRECTIVE_ACTION_IN_PROGRESS = "CORRECTIVE_ACTION_IN_PROGRESS"
    CLOSED = "CLOSED"
    VERIFIED = "VERIFIED"


class NonConformanceType(str, Enum):
    REJECTION = "REJECTION"
    DIMENSIONAL = "DIMENSIONAL"
    MATERIAL = "MATERIAL"
    DOCUMENTATION = "DOCUMENTATION"
    SURFACE_DEFECT = "SURFACE_DEFECT"
    OTHER = "OTHER"


# ============================================================================
# INSPECTION
# ============================================================================

class Inspection(Base):
    __tablename__ = "inspections"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    inspection_no: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    inspection_date: Mapped[date] = mapped_column(Date, default=date.today)

    inventory_stock_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("inventory_stocks.id"), nullable=True, index=True
    )
    grn_item_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("grn_items.id"), nullable=True
    )
    inspector_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))

    overall_result: Mapped[str] = mapped_column(
        String(10),
        default=InspectionResult.PASS.value,
        comment="PASS, FAIL, HOLD - derived from parameters"
    )
    remarks: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    parameters: Mapped[List["InspectionParameter"]] = relationship(
        "InspectionParameter",
        back_populates="inspection",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InspectionParameter.s_no"
    )

    def __repr__(self) -> str:
        return f"<Inspection(inspection_no='{self.inspection_no}', result='{self.overall_result}')>"


class InspectionParameter(Base):
    __tablename__ = "inspection_parameters"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    inspection_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("inspections.id", ondelete="CASCADE"), nullable=False
    )
    s_no: Mapped[int] = mapped_column(Integer, default=1)
    parameter_name: Mapped[str] = mapped_column(String(200), nullable=False)
    parameter_type: Mapped[str] = mapped_column(String(20), default=ParameterType.PASS_FAIL.value)
    result_value: Mapped[Optional[str]] = mapped_column(String(100))
    standard_value: Mapped[Optional[str]] = mapped_column(String(100))
    tolerance: Mapped[Optional[str]] = mapped_column(String(100))
    result: Mapped[str] = mapped_column(String(10), nullable=False, comment="PASS, FAIL, HOLD")
    remarks: Mapped[Optional[str]] = mapped_column(Text)

    inspection: Mapped["Inspection"] = relationship("Inspection", back_populates="parameters")


# ============================================================================
# QC RELEASE
# ============================================================================

class QCRelease(Base):
    __tablename__ = "qc_releases"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    release_no: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    release_date: Mapped[date] = mapped_column(Date, default=date.today)
    inspection_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("inspections.id"), nullable=False
    )
    inventory_stock_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("inventory_stocks.id"), nullable=False, index=True
    )
    decision: Mapped[str] = mapped_column(String(10), default=ReleaseDecision.ACCEPT.value, comment="ACCEPT, REJECT")
    released_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))
    remarks: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )


# ============================================================================
# NCR
# ============================================================================

class NCR(Base):
    """Non-conformance report raised against a heat, GRN line or vendor."""
    __tablename__ = "ncrs"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType(as_uuid=True), primary_key=True, default=uuid.uuid4)
    ncr_no: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    ncr_date: Mapped[date] = mapped_column(Date, default=date.today)

    grn_item_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("grn_items.id"), nullable=True
    )
    inventory_stock_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("inventory_stocks.id"), nullable=True, index=True
    )
    heat_no: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    po_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("purchase_orders.id"), nullable=True
    )
    vendor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("vendors.id"), nullable=True, index=True
    )

    non_conformance_type: Mapped[Optional[str]] = mapped_column(String(30))
    description: Mapped[str] = mapped_column(Text, nullable=False)
    root_cause: Mapped[Optional[str]] = mapped_column(Text)
    corrective_action: Mapped[Optional[str]] = mapped_column(Text)
    preventive_action: Mapped[Optional[str]] = mapped_column(Text)
    disposition: Mapped[Optional[str]] = mapped_column(String(100), comment="USE_AS_IS, REWORK, RETURN_TO_VENDOR, SCRAP")
    evidence_paths: Mapped[Optional[list]] = mapped_column(JSONType, default=list)
    target_closure_date: Mapped[Optional[date]] = mapped_column(Date)
    responsible_person_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True), ForeignKey("users.id"), nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(40),
        default=NCRStatus.OPEN.value,
        index=True,
        comment="OPEN, UNDER_INVESTIGATION, CORRECTIVE_ACTION_IN_PROGRESS, CLOSED, VERIFIED"
    )
    closed_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    closed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))
    verified_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    verified_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))
    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), ForeignKey("users.id"))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<NCR(ncr_no='{self.ncr_no}', status='{self.status}')>"
