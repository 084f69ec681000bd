from listing_tracker.models.listing import Listing, ListingStatus

__all__ = [
    "Listing",
    "ListingStatus",
]
