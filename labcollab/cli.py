"""Command-line front end for the sample collaboration core.

Usage:
    labcollab timeline SAMPLE_ID [--base-url URL] [--token TOKEN]
    labcollab labels SAMPLE_ID [--base-url URL] [--token TOKEN]

Examples:
    labcollab timeline 3f1c...        # Print the activity timeline of a sample
    labcollab labels 3f1c... --json   # Resolved labels as JSON
"""

import argparse
import asyncio
import json
import sys

from labcollab.samples.api_client import Credentials, LabApiClient, LabApiError
from labcollab.samples.config import get_settings
from labcollab.samples.labels import LabelCatalog, LabelInheritanceResolver
from labcollab.samples.timeline import EventTimelineBuilder, TimelineEntry
from labcollab.shared.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def format_entry(entry: TimelineEntry) -> str:
    """One plain-text line per timeline entry."""
    if entry.show_actor and entry.actor_name:
        prefix = f"{entry.timestamp_label}  {entry.actor_name} "
    else:
        prefix = f"{entry.timestamp_label}  {'':>{len(entry.actor_name or '')}} "
    line = f"{prefix}{entry.text}"
    if entry.link:
        line += f"  <{entry.link}>"
    return line


async def _timeline(client: LabApiClient, sample_id: str, as_json: bool, order_context: bool) -> int:
    sample, events = await asyncio.gather(
        client.get_sample(sample_id),
        client.get_sample_events(sample_id),
    )
    builder = EventTimelineBuilder(include_sample_refs=order_context)
    entries = builder.build(events, sample)

    if as_json:
        print(json.dumps([entry.to_dict() for entry in entries], ensure_ascii=False, indent=2))
        return 0

    print(f"Muestra {sample.code or sample.id}")
    for entry in entries:
        print(format_entry(entry))
    return 0


async def _labels(client: LabApiClient, sample_id: str, as_json: bool) -> int:
    catalog = LabelCatalog(client)
    sample, _ = await asyncio.gather(client.get_sample(sample_id), catalog.refresh())
    resolved = LabelInheritanceResolver(client, catalog).resolve_sample(sample)

    if as_json:
        print(json.dumps([label.to_dict() for label in resolved], ensure_ascii=False, indent=2))
        return 0

    for label in resolved:
        marker = " (heredada)" if label.inherited else ""
        print(f"{label.color}  {label.name}{marker}")
    return 0


async def run(args: argparse.Namespace) -> int:
    credentials = Credentials(args.token, get_settings().auth_scheme) if args.token else None
    async with LabApiClient(base_url=args.base_url, credentials=credentials) as client:
        try:
            if args.command == "timeline":
                return await _timeline(client, args.sample_id, args.json, args.order_context)
            return await _labels(client, args.sample_id, args.json)
        except LabApiError as e:
            logger.error("cli_request_failed", command=args.command, status_code=e.status_code, error=e.message)
            print(f"Error: {e.message}", file=sys.stderr)
            return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="labcollab",
        description="Inspect sample collaboration data of the laboratory API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--base-url",
        default=None,
        help="Laboratory API base URL (default: LABCOLLAB_API_BASE_URL)",
    )
    parser.add_argument(
        "--token",
        default=None,
        help="Access token sent in the Authorization header",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON instead of console format",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    timeline = subparsers.add_parser("timeline", help="Print the activity timeline of a sample")
    timeline.add_argument("sample_id")
    timeline.add_argument(
        "--order-context",
        action="store_true",
        help="Mention the sample code in each entry",
    )
    labels = subparsers.add_parser("labels", help="Print the resolved labels of a sample")
    labels.add_argument("sample_id")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(
        level=settings.log_level,
        json_format=args.json_logs or settings.log_json,
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
