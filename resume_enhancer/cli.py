"""CLI - Command line interface for Resume Enhancer."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from .config import DEFAULT_CONFIG_PATH, load_config
from .domain.response_validator import ResponseKind, format_validation_report, validate_response
from .errors import ProviderError, http_status_for
from .observability import setup_logging
from .providers.registry import RegistryError
from .providers.types import EnhancementResponse, ReviewResponse
from .service import create_service

console = Console()

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_PROVIDER = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="resume-enhancer",
        description="Resume Enhancer - tailor a JSON resume to a job description with an LLM",
    )
    parser.add_argument("--resume", "-r", help="Path to the resume JSON file")
    parser.add_argument("--job", "-j", help="Path to a text file with the job description")
    parser.add_argument(
        "--config", "-c",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--provider", help="Provider name to use instead of the configured default")
    parser.add_argument("--output", "-o", help="Write the JSON result to this file")
    parser.add_argument(
        "--review-only",
        action="store_true",
        help="Only run the review phase",
    )
    parser.add_argument(
        "--validate-response",
        metavar="PATH",
        help="Validate a saved raw model response instead of calling a provider",
    )
    parser.add_argument(
        "--kind",
        choices=[k.value for k in ResponseKind],
        default=ResponseKind.ENHANCEMENT.value,
        help="Response shape for --validate-response (default: enhancement)",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet mode (minimal output)",
    )
    return parser


def print_review(response: ReviewResponse) -> None:
    review = response.review_result
    for title, items, style in (
        ("Strengths", review.strengths, "green"),
        ("Weaknesses", review.weaknesses, "red"),
        ("Opportunities", review.opportunities, "cyan"),
    ):
        if items:
            console.print(Panel("\n".join(f"• {item}" for item in items), title=title, border_style=style))

    if review.prioritized_actions:
        table = Table(title="Prioritized actions")
        table.add_column("Priority")
        table.add_column("Action")
        table.add_column("Section")
        table.add_column("Reason")
        for action in review.prioritized_actions:
            table.add_row(action.priority, action.type, action.section, action.reason)
        console.print(table)

    console.print(f"Confidence: {review.confidence:.2f}", style="dim")


def print_enhancement(response: EnhancementResponse) -> None:
    if not response.improvements:
        console.print("No improvements reported.", style="yellow")
    else:
        table = Table(title=f"Improvements ({len(response.improvements)})")
        table.add_column("Type")
        table.add_column("Section")
        table.add_column("Before")
        table.add_column("After")
        for item in response.improvements:
            table.add_row(item.type, item.section, item.original, item.suggested)
        console.print(table)

    if response.reasoning:
        console.print(Panel(response.reasoning, title="Reasoning"))
    console.print(f"Tokens used (estimate): {response.tokens_used or 0:,}", style="dim")


def print_statistics(stats) -> None:
    data = stats.to_dict()
    if not data["total_failures"]:
        return
    failures = ", ".join(f"{kind}={count}" for kind, count in data["failures_by_kind"].items())
    console.print(
        f"Retries: {data['total_retries']} | recovered: {data['successful_recoveries']} | "
        f"failures: {data['total_failures']} ({failures})",
        style="dim",
    )


def _validate_saved_response(path: str, kind: str) -> int:
    text = Path(path).read_text(encoding="utf-8")
    outcome = validate_response(text, kind)
    console.print(Markdown(format_validation_report(outcome, path)))
    return EXIT_OK if outcome.is_valid else EXIT_PROVIDER


async def _run(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    setup_logging("WARNING" if args.quiet else config.log_level)

    resume = json.loads(Path(args.resume).read_text(encoding="utf-8"))
    job_description = Path(args.job).read_text(encoding="utf-8")
    service = create_service(config, provider_name=args.provider)

    try:
        if args.review_only:
            result = await service.review_resume(resume, job_description)
            if not args.quiet:
                print_review(result)
        else:
            result = await service.enhance_resume(resume, job_description)
            if not args.quiet:
                print_enhancement(result)
    finally:
        if not args.quiet:
            print_statistics(service.get_statistics())

    if args.output:
        Path(args.output).write_text(json.dumps(result.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        console.print(f"Saved result to {args.output}", style="green")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.validate_response:
            return _validate_saved_response(args.validate_response, args.kind)

        if not args.resume or not args.job:
            parser.error("--resume and --job are required")

        return asyncio.run(_run(args))
    except ProviderError as e:
        console.print(f"Provider error ({e.kind.value}, HTTP {http_status_for(e)}): {e.message}", style="red")
        return EXIT_PROVIDER
    except (RegistryError, ValueError, OSError) as e:
        console.print(f"Error: {e}", style="red")
        return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
