"""CLI commands for managing ads and viewing the feed (Studio)."""

import argparse
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from ..config.runtime import get_settings
from ..domain.drafting import AdDraft
from ..domain.geo import expires_in
from ..domain.listing import ALL_CATEGORIES, Coordinate, now_ms
from ..services.feed_service import FeedRequest
from ..wiring import build_ad_store, build_feed_service, build_insights_aggregator, build_location_service

# Default path to demo ads JSON (project root / data / seed_ads.json)
_DEFAULT_SEED_PATH = Path(__file__).resolve().parent.parent.parent.parent / "data" / "seed_ads.json"


def load_drafts_from_file(path: Path) -> list[AdDraft]:
    """Load ad drafts from a JSON file. Exits on missing file or invalid JSON/schema."""
    if not path.exists():
        print(f"Error: seed file not found: {path}", file=sys.stderr)
        print("Create data/seed_ads.json or pass --file <path>.", file=sys.stderr)
        sys.exit(1)
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, list):
        print("Error: JSON file must contain a list of ad objects.", file=sys.stderr)
        sys.exit(1)
    drafts: list[AdDraft] = []
    for i, item in enumerate(raw):
        try:
            drafts.append(AdDraft.model_validate(item))
        except ValidationError as e:
            print(f"Error: invalid ad at index {i}: {e}", file=sys.stderr)
            sys.exit(1)
    return drafts


def seed_ads(file_path: Path | None = None) -> None:
    """Load demo ads from a JSON file and post them through the AdStore."""
    path = file_path if file_path is not None else _DEFAULT_SEED_PATH
    drafts = load_drafts_from_file(path)
    print(f"Adding {len(drafts)} ads from {path}...")
    store = build_ad_store()
    created = 0
    for draft in drafts:
        try:
            store.create(draft)
            created += 1
        except ValueError as e:
            print(f"Skipped {draft.id or draft.title!r}: {e}", file=sys.stderr)
    print(f"Successfully added {created} ads.")


def _print_feed(response) -> None:
    if response.search_active:
        print(response.explanation)
    if response.location_is_fallback:
        print("(location unavailable; showing ads around the default city)")
    if not response.items:
        print("No ads found.")
        return
    for slot, group in enumerate(response.groups):
        print(f"Slot {slot + 1}:")
        for ad_id in group:
            item = next(i for i in response.items if i.ad.id == ad_id)
            print(f"  {item.ad.id}  {item.ad.title}  [{item.ad.category.value}]  {item.distance_label}  {item.expires_label}")


def main():
    parser = argparse.ArgumentParser(description="Manage local ads and preview the feed")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    seed_parser = subparsers.add_parser("seed", help="Load demo ads from a JSON file")
    seed_parser.add_argument(
        "--file",
        type=Path,
        default=None,
        help=f"Path to JSON file with ads (default: {_DEFAULT_SEED_PATH})",
    )

    subparsers.add_parser("list", help="List active ads in storage order")

    def _add_feed_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--lat", type=float, default=None, help="Latitude of the user")
        p.add_argument("--lng", type=float, default=None, help="Longitude of the user")
        p.add_argument("--category", default=ALL_CATEGORIES, help="Category or 'All'")
        p.add_argument("--radius", type=float, default=None, help="Radius in km (100 = anywhere)")
        p.add_argument("--sort", choices=("distance", "newest"), default="distance", help="Sort order")

    feed_parser = subparsers.add_parser("feed", help="Show the feed as a user at a location would see it")
    _add_feed_args(feed_parser)

    search_parser = subparsers.add_parser("search", help="Run an AI search and show matching ads")
    search_parser.add_argument("query", help="What you're looking for")
    _add_feed_args(search_parser)

    dashboard_parser = subparsers.add_parser("dashboard", help="Show an owner's insights dashboard")
    dashboard_parser.add_argument("--user-id", required=True, help="Owner identifier")

    subparsers.add_parser("purge", help="Delete expired ads now")

    args = parser.parse_args()

    if args.command == "seed":
        seed_ads(args.file)
    elif args.command == "list":
        now = now_ms()
        ads = build_ad_store().list()
        for ad in ads:
            city = ad.primary_location.city if ad.primary_location else "National"
            status = "" if ad.is_approved else "  (pending)"
            print(f"{ad.id}  {ad.title}  [{ad.category.value}]  {city}  {expires_in(ad.expires_at, now)}{status}")
        print(f"{len(ads)} active ads.")
    elif args.command in ("feed", "search"):
        detected = Coordinate(lat=args.lat, lng=args.lng) if args.lat is not None and args.lng is not None else None
        resolved = build_location_service().resolve(detected)
        try:
            request = FeedRequest(
                category=args.category,
                sort_order=args.sort,
                max_distance_km=args.radius,
                user_location=resolved.location,
                location_is_fallback=resolved.is_fallback,
            )
        except ValidationError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        service = build_feed_service()
        if args.command == "search":
            request.search = service.search(args.query)
        _print_feed(service.build_feed(request))
    elif args.command == "dashboard":
        report = build_insights_aggregator().report(args.user_id)
        print(json.dumps(report, indent=2))
    elif args.command == "purge":
        settings = get_settings()
        purged = build_ad_store(settings).purge_expired()
        print(f"Purged {purged} expired ads from {settings.storage_backend.value} storage.")
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
