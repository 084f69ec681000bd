from enum import IntEnum

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from listing_tracker.db.base import Base


class ListingStatus(IntEnum):
    PENDING = 0
    ACTIVE = 1
    INACTIVE = 2

    @classmethod
    def label_for(cls, value: int) -> str:
        """Human label for a stored status; unnamed values are "Unknown"."""
        try:
            return cls(value).name.title()
        except ValueError:
            return "Unknown"


class Listing(Base):
    __tablename__ = "listings"
    __table_args__ = (Index("ix_listings_created_at", "created_at"),)

    link: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    product: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Any integer is stored; only the ListingStatus values have names
    status: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0", index=True
    )
