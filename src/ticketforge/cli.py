"""CLI entry point: ``ticketforge generate``, ``context`` and ``templates``."""

from __future__ import annotations

# Phase 1: Singleton logging, before any transitive litellm imports
from ticketforge.logging_config import setup_logging

setup_logging()

import argparse  # noqa: E402
import asyncio  # noqa: E402
import json  # noqa: E402
import sys  # noqa: E402
from pathlib import Path  # noqa: E402

from pydantic import ValidationError  # noqa: E402

from ticketforge import __version__  # noqa: E402
from ticketforge.config import TIMEOUTS, Settings  # noqa: E402
from ticketforge.constants import (  # noqa: E402
    DEFAULT_DOCUMENT_TYPE,
    DEFAULT_PLATFORM,
    DEFAULT_TECH_STACK,
    STRATEGY_ALIASES,
)
from ticketforge.ingestion.schemas import RawInput  # noqa: E402
from ticketforge.logging_config import (  # noqa: E402
    cleanup_third_party_handlers,
)

# Phase 2: Clear litellm's duplicate handlers after all imports
cleanup_third_party_handlers()


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"ticketforge {__version__}")
        return

    if args.command == "generate":
        _run_generate(args)
    elif args.command == "context":
        _run_context(args)
    elif args.command == "templates":
        _run_templates(args)
    else:
        parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ticketforge",
        description=(
            "Design intelligence pipeline that "
            "turns design selections into implementation tickets."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )

    sub = parser.add_subparsers(dest="command")

    generate = sub.add_parser(
        "generate",
        help="Generate a document from a design export",
    )
    generate.add_argument(
        "design",
        type=str,
        help="Path to the design JSON exported by the plugin",
    )
    generate.add_argument(
        "--platform",
        "-p",
        default=DEFAULT_PLATFORM,
        help=f"Target platform (default: {DEFAULT_PLATFORM})",
    )
    generate.add_argument(
        "--document-type",
        "-d",
        default=DEFAULT_DOCUMENT_TYPE,
        help=f"Document type (default: {DEFAULT_DOCUMENT_TYPE})",
    )
    generate.add_argument(
        "--tech-stack",
        "-t",
        default=DEFAULT_TECH_STACK,
        help=f"Technology stack (default: {DEFAULT_TECH_STACK})",
    )
    generate.add_argument(
        "--strategy",
        "-s",
        default=None,
        choices=sorted(STRATEGY_ALIASES),
        help="Force a strategy (default: primary when AI is available)",
    )
    generate.add_argument(
        "--output",
        "-o",
        default=None,
        help="Write the document here instead of stdout",
    )
    generate.add_argument(
        "--json",
        action="store_true",
        help="Emit the full RenderedDocument as JSON",
    )
    generate.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Print strategy, confidence and failed attempts",
    )

    context = sub.add_parser(
        "context",
        help="Run analysis only and print the Context as JSON",
    )
    context.add_argument(
        "design",
        type=str,
        help="Path to the design JSON exported by the plugin",
    )

    templates = sub.add_parser(
        "templates",
        help="List templates or show how a request resolves",
    )
    templates.add_argument(
        "--resolve",
        nargs=3,
        metavar=("PLATFORM", "DOC_TYPE", "TECH_STACK"),
        default=None,
        help="Resolve one request and print the chosen template",
    )

    return parser


def _load_design(path_arg: str) -> RawInput:
    path = Path(path_arg)
    if not path.is_file():
        print(f"Error: {path} does not exist", file=sys.stderr)
        sys.exit(1)
    try:
        return RawInput.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        print(
            f"Error: {path} is not a valid design export:\n{exc}",
            file=sys.stderr,
        )
        sys.exit(1)


def _run_generate(args: argparse.Namespace) -> None:
    """Execute the generate command."""
    from ticketforge.generation.orchestrator import RenderedDocument
    from ticketforge.resilience.errors import GenerationExhaustedError
    from ticketforge.services.ticket_service import (
        GenerationRequest,
        TicketService,
    )

    raw = _load_design(args.design)
    settings = Settings()
    request = GenerationRequest(
        platform=args.platform,
        document_type=args.document_type,
        tech_stack=args.tech_stack,
        strategy=args.strategy,
    )

    async def run() -> RenderedDocument:
        service = TicketService.from_settings(settings)
        try:
            async with asyncio.timeout(TIMEOUTS["cli_generate"]):
                return await service.generate_document(raw, request)
        finally:
            await service.close()

    try:
        document = asyncio.run(run())
    except TimeoutError:
        print("Error: generation timed out", file=sys.stderr)
        sys.exit(1)
    except GenerationExhaustedError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    output = (
        document.model_dump_json(indent=2)
        if args.json
        else document.content
    )
    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        print(f"Wrote {args.output}")
    else:
        print(output)

    if args.verbose:
        print(
            f"\nstrategy={document.strategy_used.value} "
            f"step={document.step.value} "
            f"confidence={document.confidence:.2f} "
            f"template={document.template_path} "
            f"({document.duration_ms:.0f}ms)",
            file=sys.stderr,
        )
        if document.low_confidence:
            print("  low confidence: review before filing", file=sys.stderr)
        for attempt in document.attempts:
            print(
                f"  [failed] {attempt.step.value}: {attempt.reason}",
                file=sys.stderr,
            )


def _run_context(args: argparse.Namespace) -> None:
    """Execute the context command."""
    from ticketforge.services.ticket_service import TicketService

    raw = _load_design(args.design)
    settings = Settings()

    async def run() -> str:
        service = TicketService.from_settings(settings)
        try:
            context = await service.build_context(raw)
        finally:
            await service.close()
        return context.model_dump_json(indent=2)

    print(asyncio.run(run()))


def _run_templates(args: argparse.Namespace) -> None:
    """Execute the templates command."""
    from ticketforge.templates.resolver import TemplateResolver
    from ticketforge.templates.store import TemplateStore

    settings = Settings()
    store = TemplateStore(settings.templates_dir)

    if args.resolve:
        platform, document_type, tech_stack = args.resolve
        resolver = TemplateResolver(store)
        template = resolver.resolve(platform, document_type, tech_stack)
        print(
            json.dumps(
                {
                    "resolution_path": template.resolution_path,
                    "tier": template.tier.value,
                    "name": template.name,
                    "required_fields": sorted(template.required_fields),
                    "candidates": resolver.candidate_paths(
                        platform, document_type, tech_stack
                    ),
                },
                indent=2,
            )
        )
        return

    for info in store.list_templates():
        print(f"{info.tier.value:<17} {info.path:<45} {info.name} {info.version}")
