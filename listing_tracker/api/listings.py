from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from listing_tracker.api.schemas import (
    DailyStats,
    DailyStatsEnvelope,
    DeleteEnvelope,
    ErrorResponse,
    ListingCollectionEnvelope,
    ListingCreate,
    ListingEnvelope,
    ListingResponse,
    ListingStatusEnvelope,
    ListingUpdate,
)
from listing_tracker.core.deps import get_db
from listing_tracker.core.validation import parse_listing_id, parse_status
from listing_tracker.services import listing as listing_svc

router = APIRouter(
    prefix="/listings",
    tags=["listings"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


@router.get("", response_model=ListingCollectionEnvelope)
async def list_listings(
    limit: int | None = Query(default=None, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    listings = await listing_svc.list_listings(db, limit=limit)
    return ListingCollectionEnvelope(
        data=[ListingResponse.model_validate(item) for item in listings],
        count=len(listings),
    )


@router.post("", response_model=ListingEnvelope, status_code=201)
async def create_listing(
    body: ListingCreate,
    db: AsyncSession = Depends(get_db),
):
    listing = await listing_svc.create_listing(db, body)
    return ListingEnvelope(data=ListingResponse.model_validate(listing))


@router.get("/stats/today", response_model=DailyStatsEnvelope)
async def today_stats(db: AsyncSession = Depends(get_db)):
    day, count = await listing_svc.get_today_stats(db)
    return DailyStatsEnvelope(data=DailyStats(date=day, count=count))


# ---------------------------------------------------------------------------
# By status
# ---------------------------------------------------------------------------


@router.get("/status/{status}", response_model=ListingStatusEnvelope)
async def list_listings_by_status(
    status: str,
    db: AsyncSession = Depends(get_db),
):
    status_number = parse_status(status)
    listings = await listing_svc.get_listings_by_status(db, status_number)
    return ListingStatusEnvelope(
        data=[ListingResponse.model_validate(item) for item in listings],
        count=len(listings),
        status=status_number,
    )


# ---------------------------------------------------------------------------
# By id
# ---------------------------------------------------------------------------


@router.get("/{listing_id}", response_model=ListingEnvelope)
async def get_listing(
    listing_id: str,
    db: AsyncSession = Depends(get_db),
):
    listing = await listing_svc.get_listing(db, parse_listing_id(listing_id))
    return ListingEnvelope(data=ListingResponse.model_validate(listing))


@router.put("/{listing_id}", response_model=ListingEnvelope)
async def update_listing(
    listing_id: str,
    body: ListingUpdate,
    db: AsyncSession = Depends(get_db),
):
    listing = await listing_svc.update_listing(db, parse_listing_id(listing_id), body)
    return ListingEnvelope(data=ListingResponse.model_validate(listing))


@router.delete("/{listing_id}", response_model=DeleteEnvelope)
async def delete_listing(
    listing_id: str,
    db: AsyncSession = Depends(get_db),
):
    await listing_svc.delete_listing(db, parse_listing_id(listing_id))
    return DeleteEnvelope(message="Listing deleted successfully")
