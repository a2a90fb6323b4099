"""Fees router: class structure, schedule generation, catalog, payment."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolops.auth.dependencies import get_current_user
from schoolops.auth.rbac import require_admin
from schoolops.auth.schemas import CurrentUser
from schoolops.core.exceptions import ServiceError
from schoolops.core.schemas import Envelope
from schoolops.db.session import get_db

from .schemas import (
    ClassFeeStructureCreate,
    ClassFeeStructureResponse,
    ClassFeeStructureSummary,
    FeeCatalogResponse,
    FeePaymentCreate,
    MonthlyFeeResponse,
)
from . import service

router = APIRouter(prefix="/fees", tags=["fees"])


# --- Class Fee Structure ---
@router.post(
    "/structure",
    response_model=Envelope[ClassFeeStructureResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_class_fee_structure(
    payload: ClassFeeStructureCreate,
    db: AsyncSession = Depends(get_db),
) -> Envelope[ClassFeeStructureResponse]:
    try:
        created = await service.create_class_fee_structure(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=created, message="Fee component added")


@router.get(
    "/structure/class/{class_id}",
    response_model=Envelope[ClassFeeStructureSummary],
    dependencies=[Depends(get_current_user)],
)
async def get_class_fee_structure(
    class_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> Envelope[ClassFeeStructureSummary]:
    try:
        return Envelope(data=await service.get_class_fee_structure(db, class_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Catalog ---
@router.get(
    "/catalog/{pan_number}",
    response_model=Envelope[FeeCatalogResponse],
    dependencies=[Depends(get_current_user)],
)
async def get_fee_catalog(
    pan_number: str,
    db: AsyncSession = Depends(get_db),
) -> Envelope[FeeCatalogResponse]:
    try:
        return Envelope(data=await service.get_fee_catalog(db, pan_number))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/generate/{pan_number}",
    response_model=Envelope[FeeCatalogResponse],
    status_code=status.HTTP_201_CREATED,
)
async def generate_fees(
    pan_number: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
) -> Envelope[FeeCatalogResponse]:
    """Generate the monthly schedule for a student who has none. 409 when fee records already exist."""
    try:
        catalog = await service.generate_fees_for_student(db, pan_number, changed_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=catalog, message="Fees generated successfully")


# --- Payment ---
@router.post(
    "/pay",
    response_model=Envelope[MonthlyFeeResponse],
    status_code=status.HTTP_201_CREATED,
)
async def pay_fee(
    payload: FeePaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
) -> Envelope[MonthlyFeeResponse]:
    try:
        paid = await service.pay_fee(db, payload, changed_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=paid, message=f"Fee payment for {paid.month} processed successfully")
