"""Tool registry for MCP servers.

Every tool returns a JSON string. Input errors (unknown category, missing
contact lines, bad coordinates) come back as ``{"error": ...}`` instead of
raising; unknown ad IDs come back as ``{"error": "ad not found"}``.
"""

from __future__ import annotations

import json
import time
import uuid
from typing import Any

from pydantic import ValidationError

from .observability import log_tool_invocation

from ...domain.drafting import AdDraft, whatsapp_link
from ...domain.listing import Ad, Coordinate, InsightKind
from ...services.feed_service import FeedRequest, FeedResponse

# ---------------------------------------------------------------------------
# Response allowlists (field-level)
# ---------------------------------------------------------------------------
ALLOWED_FEED_ITEM_KEYS = frozenset({
    "ad_id",
    "title",
    "category",
    "cover_image",
    "city",
    "user_name",
    "distance_km",
    "distance_label",
    "posted_label",
    "expires_label",
})
ALLOWED_AD_DETAIL_KEYS = frozenset({
    "id",
    "user_id",
    "user_name",
    "title",
    "description",
    "category",
    "keywords",
    "images",
    "contact",
    "locations",
    "is_all_locations",
    "created_at",
    "expires_at",
    "is_approved",
    "reports",
    "reviews",
    "insights",
})

_NOT_FOUND = "ad not found"
_INPUT_ERRORS = (ValidationError, ValueError)


def _trace_id() -> str:
    return uuid.uuid4().hex[:16]


def _get_feed_service():
    from ...wiring import get_feed_service
    return get_feed_service()


def _get_ad_store():
    from ...wiring import get_ad_store
    return get_ad_store()


def _get_location_service():
    from ...wiring import get_location_service
    return get_location_service()


def _get_insights_aggregator():
    from ...wiring import get_insights_aggregator
    return get_insights_aggregator()


def _get_carousel_scheduler():
    from ...wiring import get_carousel_scheduler
    return get_carousel_scheduler()


def _shape_slots(scheduler) -> list[dict]:
    rows = scheduler.state()
    for row, slot in zip(rows, scheduler.slots):
        row["ad_ids"] = list(slot.members)
        row["current_ad_id"] = slot.current()
    return rows


def _shape_ad(ad: Ad) -> dict:
    d = ad.model_dump(mode="json")
    return {k: d[k] for k in ALLOWED_AD_DETAIL_KEYS if k in d}


def _shape_feed(response: FeedResponse) -> dict:
    items = []
    for item in response.items:
        primary = item.ad.primary_location
        row = {
            "ad_id": item.ad.id,
            "title": item.ad.title,
            "category": item.ad.category.value,
            "cover_image": item.ad.cover_image,
            "city": primary.city if primary is not None else None,
            "user_name": item.ad.user_name,
            "distance_km": item.distance_km,
            "distance_label": item.distance_label,
            "posted_label": item.posted_label,
            "expires_label": item.expires_label,
        }
        items.append({k: v for k, v in row.items() if k in ALLOWED_FEED_ITEM_KEYS})
    return {
        "items": items,
        "groups": response.groups,
        "total": response.total,
        "explanation": response.explanation,
        "search_active": response.search_active,
        "location_is_fallback": response.location_is_fallback,
    }


def _finish(tool: str, trace_id: str, t0: float, payload: dict, error: str | None = None, **extra: Any) -> str:
    log_tool_invocation(tool, trace_id, (time.monotonic() - t0) * 1000, error=error, extra=extra or None)
    return json.dumps(payload, indent=2)


def _feed_request(
    category: str,
    sort_order: str,
    max_distance_km: float | None,
    lat: float | None,
    lng: float | None,
    state: str | None,
    city: str | None,
) -> FeedRequest:
    """Resolve where the user is, then shape the request. Raises ValueError on bad input."""
    locations = _get_location_service()
    if lat is not None and lng is not None:
        resolved = locations.resolve(Coordinate(lat=lat, lng=lng))
    elif state and city:
        resolved = locations.choose(state, city)
        if resolved is None:
            raise ValueError(f"unknown place: {city}, {state}")
    else:
        resolved = locations.resolve(None)
    return FeedRequest(
        category=category,
        sort_order=sort_order,
        max_distance_km=max_distance_km,
        user_location=resolved.location,
        location_is_fallback=resolved.is_fallback,
    )


# ---------------------------------------------------------------------------
# Feed tools (consumer-facing)
# ---------------------------------------------------------------------------
FEED_TOOLS = frozenset({
    "feed_list",
    "feed_search",
    "ads_open",
    "ads_record_insight",
    "ads_review",
    "ads_report",
    "carousel_load",
    "carousel_state",
    "carousel_pause",
    "carousel_resume",
})


def register_feed_tools(mcp):
    """Register consumer tools: browse, search, open and engage with ads."""

    @mcp.tool()
    def feed_list(
        category: str = "All",
        sort_order: str = "distance",
        max_distance_km: float | None = None,
        lat: float | None = None,
        lng: float | None = None,
        state: str | None = None,
        city: str | None = None,
    ) -> str:
        """List visible ads near the user, ranked and grouped into carousel slots.

        Args:
            category: 'All' or one of Services, Businesses, Events, Jobs, Healthy
            sort_order: 'distance' (nearest first) or 'newest'
            max_distance_km: Radius in km; 100 or more means anywhere (default 50)
            lat: Detected latitude; omit to use a chosen or default city
            lng: Detected longitude
            state: State of a chosen city (used when lat/lng are omitted)
            city: Chosen city name

        Returns:
            JSON with items (ad_id, title, distance_label, ...), groups of ad IDs per slot, location_is_fallback
        """
        t0, trace_id = time.monotonic(), _trace_id()
        try:
            request = _feed_request(category, sort_order, max_distance_km, lat, lng, state, city)
        except _INPUT_ERRORS as e:
            return _finish("feed_list", trace_id, t0, {"error": str(e)}, error=str(e))
        response = _get_feed_service().build_feed(request)
        return _finish("feed_list", trace_id, t0, _shape_feed(response), results_count=response.total)

    @mcp.tool()
    def feed_search(
        query: str,
        category: str = "All",
        sort_order: str = "distance",
        max_distance_km: float | None = None,
        lat: float | None = None,
        lng: float | None = None,
        state: str | None = None,
        city: str | None = None,
    ) -> str:
        """Search ads with natural language, then apply the usual feed filters to the matches.

        A blank query clears the search and returns the plain feed. Search
        failures return an empty list with an explanation, never an error.

        Args:
            query: What the user is looking for (typed or a voice transcript)
            category: 'All' or a category name
            sort_order: 'distance' or 'newest'
            max_distance_km: Radius in km
            lat: Detected latitude
            lng: Detected longitude
            state: State of a chosen city
            city: Chosen city name

        Returns:
            JSON feed plus the search explanation
        """
        t0, trace_id = time.monotonic(), _trace_id()
        try:
            request = _feed_request(category, sort_order, max_distance_km, lat, lng, state, city)
        except _INPUT_ERRORS as e:
            return _finish("feed_search", trace_id, t0, {"error": str(e)}, error=str(e))
        service = _get_feed_service()
        request.search = service.search(query[:2_000])
        response = service.build_feed(request)
        return _finish(
            "feed_search",
            trace_id,
            t0,
            _shape_feed(response),
            results_count=response.total,
            search_active=response.search_active,
        )

    @mcp.tool()
    def ads_open(ad_id: str) -> str:
        """Open an ad's detail view. Records one view.

        Returns:
            JSON ad with contact channels, reviews, insights and a WhatsApp deep link
        """
        t0, trace_id = time.monotonic(), _trace_id()
        ad = _get_feed_service().open_ad(ad_id)
        if ad is None:
            return _finish("ads_open", trace_id, t0, {"error": _NOT_FOUND, "ad_id": ad_id}, error=_NOT_FOUND)
        payload = _shape_ad(ad)
        payload["whatsapp_link"] = whatsapp_link(ad.contact.whatsapp, ad.title)
        return _finish("ads_open", trace_id, t0, payload, ad_id=ad_id)

    @mcp.tool()
    def ads_record_insight(ad_id: str, kind: str) -> str:
        """Record an engagement event: views, calls, whatsapp, socials or web.

        Contact kinds (everything but views) also bump the contacts total.
        """
        t0, trace_id = time.monotonic(), _trace_id()
        try:
            insight_kind = InsightKind(kind)
        except ValueError:
            error = f"unknown insight kind {kind!r}"
            return _finish("ads_record_insight", trace_id, t0, {"error": error}, error=error)
        insights = _get_feed_service().record_insight(ad_id, insight_kind)
        if insights is None:
            return _finish("ads_record_insight", trace_id, t0, {"error": _NOT_FOUND, "ad_id": ad_id}, error=_NOT_FOUND)
        return _finish(
            "ads_record_insight",
            trace_id,
            t0,
            {"ad_id": ad_id, "insights": insights.model_dump()},
            kind=insight_kind.value,
        )

    @mcp.tool()
    def ads_review(ad_id: str, user_id: str, user_name: str, rating: int, comment: str = "") -> str:
        """Leave a 1-5 star review on an ad."""
        t0, trace_id = time.monotonic(), _trace_id()
        try:
            review = _get_ad_store().add_review(
                ad_id,
                {"user_id": user_id, "user_name": user_name, "rating": rating, "comment": comment},
            )
        except _INPUT_ERRORS as e:
            return _finish("ads_review", trace_id, t0, {"error": str(e)}, error=str(e))
        if review is None:
            return _finish("ads_review", trace_id, t0, {"error": _NOT_FOUND, "ad_id": ad_id}, error=_NOT_FOUND)
        return _finish("ads_review", trace_id, t0, {"ad_id": ad_id, "review": review.model_dump()})

    @mcp.tool()
    def ads_report(ad_id: str) -> str:
        """Flag an ad for moderator attention."""
        t0, trace_id = time.monotonic(), _trace_id()
        ad = _get_ad_store().report(ad_id)
        if ad is None:
            return _finish("ads_report", trace_id, t0, {"error": _NOT_FOUND, "ad_id": ad_id}, error=_NOT_FOUND)
        return _finish("ads_report", trace_id, t0, {"ad_id": ad_id, "reports": ad.reports})

    @mcp.tool()
    async def carousel_load(
        category: str = "All",
        sort_order: str = "distance",
        max_distance_km: float | None = None,
        lat: float | None = None,
        lng: float | None = None,
        state: str | None = None,
        city: str | None = None,
    ) -> str:
        """Build the feed and start rotating its carousel slots.

        Replaces any previously loaded grid; its timers are cancelled first.
        Takes the same arguments as feed_list.

        Returns:
            JSON with slots (slot_id, ad_ids, current_index, current_ad_id, paused)
        """
        t0, trace_id = time.monotonic(), _trace_id()
        try:
            request = _feed_request(category, sort_order, max_distance_km, lat, lng, state, city)
        except _INPUT_ERRORS as e:
            return _finish("carousel_load", trace_id, t0, {"error": str(e)}, error=str(e))
        response = _get_feed_service().build_feed(request)
        scheduler = _get_carousel_scheduler()
        scheduler.load([item.ad.id for item in response.items])
        return _finish(
            "carousel_load",
            trace_id,
            t0,
            {"slots": _shape_slots(scheduler), "location_is_fallback": response.location_is_fallback},
            results_count=response.total,
        )

    @mcp.tool()
    async def carousel_state() -> str:
        """Current rotation state of every slot in the loaded grid."""
        t0, trace_id = time.monotonic(), _trace_id()
        return _finish("carousel_state", trace_id, t0, {"slots": _shape_slots(_get_carousel_scheduler())})

    def _toggle(tool: str, slot_id: int, paused: bool) -> str:
        t0, trace_id = time.monotonic(), _trace_id()
        scheduler = _get_carousel_scheduler()
        if not 0 <= slot_id < len(scheduler.slots):
            error = f"unknown slot {slot_id}"
            return _finish(tool, trace_id, t0, {"error": error}, error=error)
        if paused:
            scheduler.pause(slot_id)
        else:
            scheduler.resume(slot_id)
        return _finish(tool, trace_id, t0, _shape_slots(scheduler)[slot_id], slot_id=slot_id)

    @mcp.tool()
    async def carousel_pause(slot_id: int) -> str:
        """Stop a slot from rotating (e.g. while the user hovers it). Keeps its current ad."""
        return _toggle("carousel_pause", slot_id, True)

    @mcp.tool()
    async def carousel_resume(slot_id: int) -> str:
        """Let a paused slot rotate again from its current ad."""
        return _toggle("carousel_resume", slot_id, False)


# ---------------------------------------------------------------------------
# Studio tools (owners and moderators)
# ---------------------------------------------------------------------------
STUDIO_TOOLS = frozenset({
    "ads_create",
    "ads_update",
    "ads_renew",
    "ads_repost",
    "ads_delete",
    "moderation_queue",
    "moderation_approve",
    "moderation_dismiss_reports",
    "insights_dashboard",
})


def register_studio_tools(mcp):
    """Register posting, lifecycle, moderation and dashboard tools."""

    def _lifecycle(tool: str, ad_id: str, op) -> str:
        t0, trace_id = time.monotonic(), _trace_id()
        ad = op(ad_id)
        if ad is None:
            return _finish(tool, trace_id, t0, {"error": _NOT_FOUND, "ad_id": ad_id}, error=_NOT_FOUND)
        return _finish(tool, trace_id, t0, _shape_ad(ad), ad_id=ad_id)

    @mcp.tool()
    def ads_create(
        user_id: str,
        user_name: str,
        title: str,
        category: str,
        phone: str,
        whatsapp: str,
        state: str,
        city: str,
        description: str = "",
        keywords: str = "",
        images: list[str] | None = None,
        extra_locations: list[dict[str, str]] | None = None,
        is_all_locations: bool = False,
        instagram: str | None = None,
        tiktok: str | None = None,
        facebook: str | None = None,
        youtube: str | None = None,
        email: str | None = None,
        website: str | None = None,
        ticket_link: str | None = None,
    ) -> str:
        """Post a new ad that stays live for 24 hours.

        Args:
            user_id: Owner identifier
            user_name: Owner display name
            title: Headline
            category: Services, Businesses, Events, Jobs or Healthy
            phone: Call line (mandatory)
            whatsapp: WhatsApp line (mandatory)
            state: State of the home location
            city: City of the home location
            description: Body text
            keywords: Comma-separated keywords
            images: Image URLs, cover first
            extra_locations: Up to 2 more places as {"state": ..., "city": ...}
            is_all_locations: Show the ad everywhere in the country
            instagram: Handle or profile URL
            tiktok: Handle or profile URL
            facebook: Page name or URL
            youtube: Channel handle or URL
            email: Contact email
            website: Website URL
            ticket_link: Ticket URL (Events only)

        Returns:
            JSON of the stored ad, or {"error": ...}
        """
        t0, trace_id = time.monotonic(), _trace_id()
        home = _get_location_service().choose(state, city)
        if home is None:
            error = f"unknown place: {city}, {state}"
            return _finish("ads_create", trace_id, t0, {"error": error}, error=error)
        try:
            draft = AdDraft(
                user_id=user_id,
                user_name=user_name,
                title=title,
                description=description,
                category=category,
                keywords=keywords,
                images=images or [],
                contact={
                    "phone": phone,
                    "whatsapp": whatsapp,
                    "instagram": instagram,
                    "tiktok": tiktok,
                    "facebook": facebook,
                    "youtube": youtube,
                    "email": email,
                    "website": website,
                    "ticket_link": ticket_link,
                },
                location=home.location,
                extra_locations=extra_locations or [],
                is_all_locations=is_all_locations,
            )
            ad = _get_ad_store().create(draft)
        except _INPUT_ERRORS as e:
            return _finish("ads_create", trace_id, t0, {"error": str(e)}, error=str(e))
        return _finish("ads_create", trace_id, t0, _shape_ad(ad), ad_id=ad.id)

    @mcp.tool()
    def ads_update(ad_id: str, fields: dict[str, Any]) -> str:
        """Edit an ad. id, created_at, counters and reviews cannot be changed.

        Args:
            ad_id: Ad to edit
            fields: Partial ad fields, e.g. {"title": "...", "keywords": "a, b"}
        """
        t0, trace_id = time.monotonic(), _trace_id()
        ad = _get_ad_store().update(ad_id, fields)
        if ad is None:
            error = "ad not found or edit rejected"
            return _finish("ads_update", trace_id, t0, {"error": error, "ad_id": ad_id}, error=error)
        return _finish("ads_update", trace_id, t0, _shape_ad(ad), ad_id=ad_id)

    @mcp.tool()
    def ads_renew(ad_id: str) -> str:
        """Keep an ad live for another 24 hours from now."""
        return _lifecycle("ads_renew", ad_id, _get_ad_store().renew)

    @mcp.tool()
    def ads_repost(ad_id: str) -> str:
        """Renew an ad and move it to the top of the newest-first order."""
        return _lifecycle("ads_repost", ad_id, _get_ad_store().repost)

    @mcp.tool()
    def ads_delete(ad_id: str) -> str:
        """Delete an ad and its insights permanently."""
        t0, trace_id = time.monotonic(), _trace_id()
        deleted = _get_ad_store().delete(ad_id)
        return _finish("ads_delete", trace_id, t0, {"ad_id": ad_id, "deleted": deleted})

    @mcp.tool()
    def moderation_queue() -> str:
        """Ads awaiting approval and ads with user reports (most reported first)."""
        t0, trace_id = time.monotonic(), _trace_id()
        store = _get_ad_store()
        pending = [_shape_ad(ad) for ad in store.pending()]
        reported = [_shape_ad(ad) for ad in store.reported()]
        return _finish(
            "moderation_queue",
            trace_id,
            t0,
            {"pending": pending, "reported": reported},
            pending_count=len(pending),
            reported_count=len(reported),
        )

    @mcp.tool()
    def moderation_approve(ad_id: str) -> str:
        """Approve an ad so it shows up in the feed."""
        return _lifecycle("moderation_approve", ad_id, _get_ad_store().approve)

    @mcp.tool()
    def moderation_dismiss_reports(ad_id: str) -> str:
        """Clear all reports on an ad."""
        return _lifecycle("moderation_dismiss_reports", ad_id, _get_ad_store().dismiss_reports)

    @mcp.tool()
    def insights_dashboard(user_id: str) -> str:
        """Totals across an owner's live ads plus their most recent reviews."""
        t0, trace_id = time.monotonic(), _trace_id()
        report = _get_insights_aggregator().report(user_id)
        return _finish("insights_dashboard", trace_id, t0, report, user_id=user_id)
