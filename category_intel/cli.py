"""CLI tool for category intelligence.

Usage:
    python -m category_intel.cli analyze "Pokemon Fire Red GBA" [--description "..."] [--json]
    python -m category_intel.cli fields 139973 [--detected '{"Platform": ["Nintendo Game Boy Advance"]}']
    python -m category_intel.cli leaf 139973
    python -m category_intel.cli explain "The item specific Brand is missing."
    python -m category_intel.cli report
"""
import argparse
import asyncio
import json
import logging
import sys

from category_intel.config import config
from category_intel.engine import CategoryIntelligenceEngine
from category_intel.errors import translate
from category_intel.performance import PerformanceTracker
from category_intel.taxonomy import EmptyQueryError, TaxonomyClient, TaxonomyError


def _client() -> TaxonomyClient:
    try:
        config.validate()
    except ValueError as e:
        print(f"❌ {e}")
        sys.exit(1)
    return TaxonomyClient()


async def _analyze(args, tracker: PerformanceTracker):
    async with _client() as taxonomy:
        engine = CategoryIntelligenceEngine(taxonomy, tracker=tracker)
        return await engine.analyze_item(args.title, args.description)


def cmd_analyze(args, tracker: PerformanceTracker):
    """Suggest categories and auto-detect aspects for a title."""
    result = asyncio.run(_analyze(args, tracker))
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return

    if not result.suggested_categories:
        print(f"⚠️ No categories found for: {args.title}")
        return
    print(f"🧠 {len(result.suggested_categories)} categories for: {args.title}")
    for entry in result.suggested_categories:
        star = "⭐" if entry.category_id == result.recommended_category else "  "
        print(f"{star} [{entry.confidence.value}] {entry.category_id} {entry.category_name}")
        if entry.error:
            print(f"     ❌ {entry.error}")
            continue
        for name, values in entry.auto_detected_aspects.items():
            print(f"     ✅ {name}: {', '.join(values)}")
        if entry.required_user_input:
            print(f"     ✏️ Still needed: {', '.join(entry.required_user_input)}")


async def _fields(args, tracker: PerformanceTracker):
    detected = json.loads(args.detected) if args.detected else {}
    async with _client() as taxonomy:
        engine = CategoryIntelligenceEngine(taxonomy, tracker=tracker)
        return await engine.fields_for(args.category_id, detected)


def cmd_fields(args, tracker: PerformanceTracker):
    """List the input fields a category still needs."""
    fields = asyncio.run(_fields(args, tracker))
    if not fields:
        print(f"✅ Nothing left to fill for category {args.category_id}")
        return
    print(f"📋 {len(fields)} fields for category {args.category_id}:")
    for f in fields:
        marker = "*" if f.required else " "
        line = f"  {marker} {f.label} ({f.type.value})"
        if f.options:
            shown = ", ".join(f.options[:5])
            more = f" +{len(f.options) - 5} more" if len(f.options) > 5 else ""
            line += f": {shown}{more}"
        print(line)
        print(f"     💡 {f.help_text}")


async def _leaf(args):
    async with _client() as taxonomy:
        return await taxonomy.is_leaf(args.category_id)


def cmd_leaf(args, tracker: PerformanceTracker):
    """Check whether a category can be listed under."""
    if asyncio.run(_leaf(args)):
        print(f"🍃 {args.category_id} is a leaf category (listable)")
    else:
        print(f"🌳 {args.category_id} is too broad, pick a subcategory")


def cmd_explain(args, tracker: PerformanceTracker):
    """Explain a listing error."""
    translated = translate(args.error)
    print(f"💬 {translated.message}")
    print(f"   Recoverable: {'yes' if translated.recoverable else 'no'}")
    for i, action in enumerate(translated.actions, 1):
        print(f"   {i}. {action}")


def cmd_report(args, tracker: PerformanceTracker):
    """Show the performance report."""
    if not tracker.store.blocking:
        print("💡 Metrics are kept in memory per process; set REDIS_URL to report on earlier runs")
    print(tracker.generate_performance_report())


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="category-intel",
        description="Category intelligence: suggest categories, pre-fill item aspects, explain listing errors",
    )
    sub = parser.add_subparsers(dest="command", help="Command")

    p = sub.add_parser("analyze", help="Analyze an item title")
    p.add_argument("title", help="Item title")
    p.add_argument("--description", "-d", help="Item description")
    p.add_argument("--json", action="store_true", help="Print JSON")

    p = sub.add_parser("fields", help="Dynamic fields for a category")
    p.add_argument("category_id", help="Category ID")
    p.add_argument("--detected", help="Auto-detected aspects as JSON")

    p = sub.add_parser("leaf", help="Check if a category is a leaf")
    p.add_argument("category_id", help="Category ID")

    p = sub.add_parser("explain", help="Explain a listing error")
    p.add_argument("error", help="Raw error message or JSON fault payload")

    sub.add_parser("report", help="Show performance report (needs REDIS_URL to include earlier runs)")

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    tracker = PerformanceTracker.from_config()

    commands = {
        "analyze": cmd_analyze,
        "fields": cmd_fields,
        "leaf": cmd_leaf,
        "explain": cmd_explain,
        "report": cmd_report,
    }
    try:
        commands[args.command](args, tracker)
    except TaxonomyError as e:
        translated = translate(str(e))
        print(f"❌ {translated.message}")
        sys.exit(2)
    except EmptyQueryError as e:
        print(f"❌ {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
