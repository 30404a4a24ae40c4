"""CLI entrypoints for codesight commands."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from .cleanup import ProjectCleanup
from .config import ConfigError, load_config
from .errors import AnalysisError
from .logging import configure_logging
from .orchestrator import AnalysisOrchestrator


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codesight",
        description="Analyse project structure, imports and components.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--config",
        default=".",
        help="Directory containing .codesight.yml (defaults to current directory).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyse a project from an uploaded ZIP or its existing directory.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    analyze_parser.add_argument("project_id", help="Identifier of the project to analyse.")
    analyze_parser.add_argument(
        "--zip",
        dest="zip_path",
        default=None,
        help="ZIP archive to extract before analysis.",
    )
    analyze_parser.add_argument(
        "--output",
        default=None,
        help="Write the analysis JSON here instead of stdout.",
    )

    clone_parser = subparsers.add_parser(
        "clone",
        help="Shallow-clone a git repository into the project directory.",
    )
    _add_verbose_option(clone_parser, suppress_default=True)
    clone_parser.add_argument("project_id", help="Identifier to clone the repository under.")
    clone_parser.add_argument("git_url", help="Repository URL.")
    clone_parser.add_argument("--token", default=None, help="Access token for private hosts.")

    context_parser = subparsers.add_parser(
        "context",
        help="Print the file digest that would accompany a feature request.",
    )
    _add_verbose_option(context_parser, suppress_default=True)
    context_parser.add_argument("project_id", help="Identifier of an analysed project.")
    context_parser.add_argument("feature", nargs="+", help="Feature description.")

    cleanup_parser = subparsers.add_parser(
        "cleanup",
        help="Delete stored projects older than the retention threshold.",
    )
    _add_verbose_option(cleanup_parser, suppress_default=True)
    cleanup_parser.add_argument(
        "--max-age-hours",
        type=float,
        default=None,
        help="Override the configured retention threshold.",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for codesight commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    try:
        config = load_config(Path(args.config))
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    if args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port, config=config)
        return

    if args.command == "cleanup":
        max_age = args.max_age_hours
        if max_age is None:
            max_age = config.storage.retention_hours
        deleted = ProjectCleanup(config.storage.projects_dir, max_age).sweep()
        print(f"Deleted {len(deleted)} project entr{'y' if len(deleted) == 1 else 'ies'}")
        return

    orchestrator = AnalysisOrchestrator(config)
    try:
        if args.command == "analyze":
            zip_path = Path(args.zip_path) if args.zip_path else None
            result = asyncio.run(orchestrator.analyze(args.project_id, zip_path))
            document = json.dumps(result.to_dict(), indent=2)
            if args.output:
                Path(args.output).write_text(document + "\n", encoding="utf-8")
                print(f"Analysis written to {args.output}")
            else:
                print(document)
        elif args.command == "clone":
            outcome = asyncio.run(orchestrator.clone(args.project_id, args.git_url, args.token))
            print(f"Cloned into {outcome.path} after {outcome.attempts} attempt(s)")
        elif args.command == "context":
            _, digest = asyncio.run(
                orchestrator.feature_context(args.project_id, " ".join(args.feature))
            )
            print(digest)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except AnalysisError as exc:
        detail = f" ({exc.details})" if exc.details else ""
        parser.exit(1, f"codesight {args.command} failed: {exc.message}{detail}\n")


if __name__ == "__main__":
    main(sys.argv[1:])
