import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from listing_tracker.api.schemas import ListingCreate, ListingUpdate
from listing_tracker.core.errors import DuplicateListingError, NotFoundError, StoreError
from listing_tracker.db.base import utcnow
from listing_tracker.models.listing import Listing

logger = logging.getLogger(__name__)


@contextmanager
def _store_call(action: str) -> Iterator[None]:
    """Re-raise database failures as StoreError("Failed to <action>")."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Store error: failed to %s", action)
        reason = getattr(exc, "orig", None) or exc
        raise StoreError(f"Failed to {action}", str(reason)) from exc


async def _commit_unique(db: AsyncSession, link: str) -> None:
    try:
        await db.commit()
    except IntegrityError as exc:
        # link carries the only unique constraint on the table
        await db.rollback()
        raise DuplicateListingError(
            "Listing already exists",
            f"{link} has already been added",
        ) from exc


async def create_listing(db: AsyncSession, data: ListingCreate) -> Listing:
    listing = Listing(link=data.link, product=data.product, status=data.status)
    db.add(listing)
    with _store_call("create listing"):
        await _commit_unique(db, data.link)
        await db.refresh(listing)

    logger.info("Listing created", extra={"listing_id": str(listing.id), "link": listing.link})
    return listing


async def list_listings(db: AsyncSession, limit: int | None = None) -> list[Listing]:
    """All listings, newest first."""
    query = select(Listing).order_by(Listing.created_at.desc())
    if limit is not None:
        query = query.limit(limit)
    with _store_call("fetch listings"):
        result = await db.execute(query)
    return list(result.scalars().all())


async def get_listings_by_status(db: AsyncSession, status: int) -> list[Listing]:
    query = (
        select(Listing)
        .where(Listing.status == status)
        .order_by(Listing.created_at.desc())
    )
    with _store_call("fetch listings by status"):
        result = await db.execute(query)
    return list(result.scalars().all())


async def get_listing(db: AsyncSession, listing_id: uuid.UUID) -> Listing:
    with _store_call("fetch listing"):
        result = await db.execute(select(Listing).where(Listing.id == listing_id))
    listing = result.scalar_one_or_none()
    if not listing:
        raise NotFoundError("Listing not found")
    return listing


async def update_listing(
    db: AsyncSession, listing_id: uuid.UUID, data: ListingUpdate
) -> Listing:
    """Read-modify-write: load the row (404 if missing), apply, commit."""
    listing = await get_listing(db, listing_id)

    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(listing, field, value)
    listing.updated_at = utcnow()

    with _store_call("update listing"):
        await _commit_unique(db, changes.get("link", listing.link))
        await db.refresh(listing)

    logger.info(
        "Listing updated",
        extra={"listing_id": str(listing_id), "fields": sorted(changes)},
    )
    return listing


async def delete_listing(db: AsyncSession, listing_id: uuid.UUID) -> bool:
    """Delete a listing; returns False when no row had that id."""
    with _store_call("delete listing"):
        result = await db.execute(delete(Listing).where(Listing.id == listing_id))
        await db.commit()

    deleted = bool(result.rowcount)
    logger.info("Listing deleted", extra={"listing_id": str(listing_id), "deleted": deleted})
    return deleted


async def count_created_on(db: AsyncSession, day: date) -> int:
    """Number of listings created during ``day`` (UTC)."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    end = start + timedelta(days=1)
    query = select(func.count(Listing.id)).where(
        Listing.created_at >= start,
        Listing.created_at < end,
    )
    with _store_call("fetch daily stats"):
        result = await db.execute(query)
    return result.scalar() or 0


async def get_today_stats(db: AsyncSession, now: datetime | None = None) -> tuple[date, int]:
    today = (now or utcnow()).astimezone(timezone.utc).date()
    return today, await count_created_on(db, today)
