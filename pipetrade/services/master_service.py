"""Customer and vendor master maintenance."""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Type, Union

from fastapi import HTTPException, status
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from pipetrade.models.master import Customer, Vendor
from pipetrade.schemas.master import PartyCreate, PartyUpdate

logger = logging.getLogger(__name__)

Party = Union[Customer, Vendor]


class MasterService:
    """CRUD for the two party masters. Both share one field layout."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_parties(
        self,
        model: Type[Party],
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[Party], int]:
        query = select(model)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(model.name.ilike(pattern), model.gst_no.ilike(pattern)))
        if is_active is not None:
            query = query.where(model.is_active == is_active)

        total = (await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0

        result = await self.db.execute(query.order_by(model.name).offset(skip).limit(limit))
        return list(result.scalars().all()), total

    async def get_party(self, model: Type[Party], party_id: uuid.UUID) -> Party:
        party = await self.db.get(model, party_id)
        if not party:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{model.__name__} not found"
            )
        return party

    async def create_party(self, model: Type[Party], data: PartyCreate) -> Party:
        party = model(**data.model_dump(), is_active=True)
        self.db.add(party)
        await self.db.commit()
        await self.db.refresh(party)
        logger.info("Created %s %s", model.__name__.lower(), party.name)
        return party

    async def update_party(self, model: Type[Party], party_id: uuid.UUID, data: PartyUpdate) -> Party:
        party = await self.get_party(model, party_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(party, field, value)
        await self.db.commit()
        await self.db.refresh(party)
        return party

    async def delete_party(self, model: Type[Party], party_id: uuid.UUID) -> None:
        """Soft delete: masters stay referenced by historical documents."""
        party = await self.get_party(model, party_id)
        party.is_active = False
        await self.db.commit()

    async def approve_vendor(self, vendor_id: uuid.UUID) -> Vendor:
        vendor = await self.get_party(Vendor, vendor_id)
        vendor.is_approved = True
        vendor.approved_date = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(vendor)
        logger.info("Vendor %s approved", vendor.name)
        return vendor
