"""Command-line entry point for link previews."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from typing import Iterable, List, Sequence

from .config import PreviewConfig
from .markdown import failure_content
from .models import PreviewResult
from .pipeline import LinkPreviewPipeline, candidate_image_urls
from .utils import upgrade_to_https

logger = logging.getLogger("link_preview.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("preview", *argv)


def _add_fetch_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("urls", nargs="+", help="One or more URLs to preview")
    parser.add_argument(
        "--static-only",
        action="store_true",
        help="Skip the headless browser and fetch pages with plain HTTP requests",
    )
    parser.add_argument(
        "--wait",
        type=float,
        default=4.5,
        help="Seconds to wait after page load before reading the rendered DOM",
    )
    parser.add_argument(
        "--attempts",
        type=int,
        default=3,
        help="Maximum static fetch attempts per URL",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=20.0,
        help="Static request timeout in seconds",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_preview_arguments(parser: argparse.ArgumentParser) -> None:
    _add_fetch_arguments(parser)
    parser.add_argument(
        "--image-timeout",
        type=float,
        default=6.0,
        help="Timeout in seconds for each preview image check",
    )
    parser.add_argument(
        "--favicon-fallback",
        action="store_true",
        help="Use the site favicon when no preview image validates",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit results as JSON lines instead of Markdown",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fetch web pages and build Markdown link previews with product metadata.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    preview_parser = subparsers.add_parser(
        "preview", help="Build a link preview for each URL"
    )
    _add_preview_arguments(preview_parser)

    images_parser = subparsers.add_parser(
        "images", help="List ranked preview image candidates without validating them"
    )
    _add_fetch_arguments(images_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )


def build_config(args: argparse.Namespace) -> PreviewConfig:
    return PreviewConfig(
        max_attempts=args.attempts,
        prefer_rendering=not args.static_only,
        wait_after_load=args.wait,
        request_timeout=args.timeout,
        image_timeout=getattr(args, "image_timeout", 6.0),
        favicon_fallback=getattr(args, "favicon_fallback", False),
    )


async def run_previews(urls: List[str], pipeline: LinkPreviewPipeline) -> List[object]:
    """Extract each URL in turn; failures are returned in place of results."""
    outcomes: List[object] = []
    for url in urls:
        try:
            outcomes.append(await pipeline.extract(url))
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Failed to preview %s: %s", url, exc)
            outcomes.append(exc)
    return outcomes


def _write_outcome(url: str, outcome: object, as_json: bool) -> None:
    if isinstance(outcome, PreviewResult):
        if as_json:
            sys.stdout.write(json.dumps(outcome.as_dict(), ensure_ascii=False) + "\n")
        else:
            sys.stdout.write(f"# {outcome.final_title}\n\n{outcome.content}\n\n")
        return
    if as_json:
        sys.stdout.write(json.dumps({"source_url": url, "error": str(outcome)}) + "\n")
    else:
        sys.stdout.write(failure_content(url, outcome) + "\n\n")


def _run_preview(args: argparse.Namespace) -> int:
    _configure_logging(args.verbose)
    pipeline = LinkPreviewPipeline(build_config(args))

    overall_start = time.perf_counter()
    outcomes = asyncio.run(run_previews(args.urls, pipeline))
    total_elapsed = time.perf_counter() - overall_start

    failures = 0
    for url, outcome in zip(args.urls, outcomes):
        if not isinstance(outcome, PreviewResult):
            failures += 1
        _write_outcome(url, outcome, args.json)
    sys.stdout.flush()

    logger.info(
        "Finished in %.2fs (%d/%d succeeded, %d failed)",
        total_elapsed,
        len(outcomes) - failures,
        len(outcomes),
        failures,
    )
    return 1 if failures else 0


async def _list_images(urls: List[str], pipeline: LinkPreviewPipeline) -> int:
    failures = 0
    for url in urls:
        try:
            html = await pipeline.fetch(url)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Failed to load %s: %s", url, exc)
            failures += 1
            continue
        sys.stdout.write(f"{url}\n")
        for candidate in candidate_image_urls(html, upgrade_to_https(url), pipeline.config):
            sys.stdout.write(f"  {candidate}\n")
    return failures


def _run_images(args: argparse.Namespace) -> int:
    _configure_logging(args.verbose)
    pipeline = LinkPreviewPipeline(build_config(args))
    failures = asyncio.run(_list_images(args.urls, pipeline))
    return 1 if failures else 0


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    if args.command == "preview":
        code = _run_preview(args)
    else:
        code = _run_images(args)
    raise SystemExit(code)


if __name__ == "__main__":
    main()
