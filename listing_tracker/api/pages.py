"""Single-page UI: submission form, today's counter and the listing list."""

import logging
from datetime import date, datetime
from html import escape
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, Form, Query
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from listing_tracker.api.schemas import ListingCreate
from listing_tracker.core.config import settings
from listing_tracker.core.deps import get_db
from listing_tracker.core.errors import DuplicateListingError, StoreError
from listing_tracker.core.validation import is_valid_facebook_url
from listing_tracker.models.listing import Listing, ListingStatus
from listing_tracker.services import listing as listing_svc

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])

DEFAULT_TITLE = "Facebook Marketplace Listing"

# kind -> (tone, title, description)
NOTICES = {
    "added": ("success", "Success!", "Facebook Marketplace listing added successfully"),
    "duplicate": ("error", "Duplicate Listing", "This Facebook Marketplace URL has already been added"),
    "invalid": ("error", "Invalid URL", "Please provide a valid Facebook Marketplace URL"),
    "required": ("error", "URL Required", "Please paste a Facebook Marketplace URL"),
    "error": ("error", "Error", "Failed to add listing. Please try again."),
}

_BADGE_CLASSES = {
    ListingStatus.PENDING: "badge-pending",
    ListingStatus.ACTIVE: "badge-active",
    ListingStatus.INACTIVE: "badge-inactive",
}

_STYLE = """
  body { font-family: Inter, -apple-system, Segoe UI, Roboto, Arial, sans-serif; margin: 0;
         background: linear-gradient(135deg, #1877f2, #0b3d91); color: #162033; min-height: 100vh; }
  header { text-align: center; color: #fff; padding: 32px 16px 24px; }
  header h1 { font-size: 40px; margin: 0 0 8px; }
  header p { color: rgba(255,255,255,.8); margin: 0; }
  main { max-width: 900px; margin: 0 auto; padding: 0 16px 48px; display: grid; gap: 24px; }
  .panel { background: #fff; border-radius: 16px; padding: 24px; box-shadow: 0 10px 30px rgba(0,0,0,.15); }
  form { display: grid; gap: 12px; }
  input { height: 44px; border: 1px solid #d0d5dd; border-radius: 10px; padding: 0 12px; font-size: 16px; }
  button { height: 48px; border: 0; border-radius: 10px; background: #1877f2; color: #fff; font-size: 16px;
           font-weight: 600; cursor: pointer; }
  .notice { border-radius: 10px; padding: 12px 16px; }
  .notice-success { background: #ecfdf3; color: #027a48; }
  .notice-error { background: #fef3f2; color: #b42318; }
  .stats { display: flex; align-items: center; gap: 12px; }
  .stats .count { font-size: 32px; font-weight: 700; color: #1877f2; }
  .muted { color: #667085; font-size: 13px; }
  .listing { border-top: 1px solid #e4e7ec; padding: 16px 0; display: flex; justify-content: space-between; gap: 16px; }
  .listing h3 { margin: 0 0 6px; text-transform: capitalize; }
  .listing .link { word-break: break-all; margin: 0 0 6px; }
  .badge { border: 1px solid #d0d5dd; border-radius: 999px; padding: 2px 8px; font-size: 12px; margin-left: 8px; }
  .badge-pending { background: #eff8ff; color: #175cd3; border-color: #b2ddff; }
  .badge-active { background: #ecfdf3; color: #027a48; border-color: #abefc6; }
  .badge-inactive { background: #fef3f2; color: #b42318; border-color: #fecdca; }
  .view { align-self: flex-start; border: 1px solid #d0d5dd; border-radius: 8px; padding: 6px 12px;
          text-decoration: none; color: #344054; white-space: nowrap; }
  .empty { text-align: center; padding: 32px 0; }
"""


def listing_title(url: str) -> str:
    """Title shown for a listing: the last path segment with dashes as spaces."""
    try:
        path = urlsplit(url).path
    except ValueError:
        return DEFAULT_TITLE
    return path.split("/")[-1].replace("-", " ") or DEFAULT_TITLE


def format_created(value: datetime) -> str:
    return f"{value:%b} {value.day}, {value:%Y, %I:%M %p}"


def format_long_date(value: date) -> str:
    return f"{value:%A, %B} {value.day}"


def _render_notice(kind: str | None) -> str:
    if kind not in NOTICES:
        return ""
    tone, title, description = NOTICES[kind]
    return (
        f"<div class='notice notice-{tone}' role='status'>"
        f"<b>{escape(title)}</b> {escape(description)}</div>"
    )


def _render_status_badge(status: int) -> str:
    label = ListingStatus.label_for(status)
    css = _BADGE_CLASSES.get(status, "")
    return f"<span class='badge {css}'>{escape(label)}</span>"


def _render_listing(listing: Listing) -> str:
    product = f"<p class='muted'>{escape(listing.product)}</p>" if listing.product else ""
    return f"""
      <div class='listing'>
        <div>
          <h3>{escape(listing_title(listing.link))}</h3>
          {product}
          <p class='link muted'>{escape(listing.link)}</p>
          <span class='muted'>{escape(format_created(listing.created_at))}</span>
          {_render_status_badge(listing.status)}
        </div>
        <a class='view' href='{escape(listing.link, quote=True)}' target='_blank' rel='noopener noreferrer'>View</a>
      </div>"""


def _render_stats(today: date | None, count: int | None) -> str:
    if today is None or count is None:
        return ""
    return f"""
    <section class='panel'>
      <h2>Today's Progress</h2>
      <div class='stats'>
        <div class='count'>{count}</div>
        <div>
          <div>listings added</div>
          <div class='muted'>{escape(format_long_date(today))}</div>
        </div>
      </div>
    </section>"""


def _render_listings(listings: list[Listing]) -> str:
    if not listings:
        return """
    <section class='panel empty'>
      <h3>No listings yet</h3>
      <p class='muted'>Add your first Facebook Marketplace listing above!</p>
    </section>"""
    items = "".join(_render_listing(item) for item in listings)
    return f"""
    <section class='panel'>
      <h2>Your FBMP Listings ({len(listings)})</h2>
      {items}
    </section>"""


def render_index(
    listings: list[Listing],
    today: date | None,
    today_count: int | None,
    notice: str | None = None,
    load_error: str | None = None,
) -> str:
    error_banner = ""
    if load_error:
        error_banner = (
            "<div class='notice notice-error' role='alert'>"
            f"<b>Could not load listings.</b> {escape(load_error)}</div>"
        )
    body = _render_listings(listings) if not load_error else ""
    return f"""<!doctype html>
<html>
<head>
  <meta charset='utf-8'>
  <meta name='viewport' content='width=device-width, initial-scale=1'>
  <title>{escape(settings.app_name)}</title>
  <style>{_STYLE}</style>
</head>
<body>
  <header>
    <h1>{escape(settings.app_name)}</h1>
    <p>Organize and manage your Facebook Marketplace listings in one place</p>
  </header>
  <main>
    <section class='panel'>
      {_render_notice(notice)}
      <form method='post' action='/'>
        <input type='url' name='link' placeholder='Paste your Facebook Marketplace listing URL here...' required>
        <input type='text' name='product' maxlength='255' placeholder='Product (optional)'>
        <button type='submit'>Add FBMP Listing</button>
      </form>
    </section>
    {error_banner}
    {_render_stats(today, today_count)}
    {body}
  </main>
</body>
</html>"""


def _redirect(notice: str) -> RedirectResponse:
    return RedirectResponse(url=f"/?notice={notice}", status_code=303)


@router.get("/", response_class=HTMLResponse)
async def index(
    notice: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
) -> HTMLResponse:
    try:
        listings = await listing_svc.list_listings(db, limit=settings.recent_listings_limit)
        today, today_count = await listing_svc.get_today_stats(db)
    except StoreError as exc:
        return HTMLResponse(render_index([], None, None, notice=notice, load_error=exc.message))
    return HTMLResponse(render_index(listings, today, today_count, notice=notice))


@router.post("/")
async def submit_listing(
    link: str = Form(default=""),
    product: str = Form(default=""),
    db: AsyncSession = Depends(get_db),
) -> RedirectResponse:
    link = link.strip()
    if not link:
        return _redirect("required")
    if not is_valid_facebook_url(link):
        return _redirect("invalid")

    try:
        await listing_svc.create_listing(db, ListingCreate(link=link, product=product[:255]))
    except DuplicateListingError:
        logger.info("Duplicate listing submitted", extra={"link": link})
        return _redirect("duplicate")
    except StoreError:
        return _redirect("error")
    return _redirect("added")
