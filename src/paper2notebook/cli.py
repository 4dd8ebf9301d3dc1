"""Command line interface for the paper2notebook pipeline."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

from .config import AppConfig
from .errors import PipelineError
from .io import load_paper_text
from .runtime import build_orchestrator

__all__ = ["main"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="paper2notebook",
        description="Turn research papers into runnable Colab notebooks.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        allow_abbrev=False,
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    subparsers = parser.add_subparsers(dest="command")

    implement = subparsers.add_parser(
        "implement",
        help="Run analysis → plan → notebook → publish for one paper.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        allow_abbrev=False,
    )
    implement.add_argument("--input", required=True, help="Path to the paper (.pdf, .txt or .md).")
    implement.add_argument(
        "--output-dir",
        dest="output_dir",
        default=None,
        help="Write the notebook here instead of publishing a gist.",
    )
    implement.add_argument(
        "--provider",
        default=None,
        help="LLM provider to use (openai or mock). Defaults to PAPER2NB_PROVIDER.",
    )
    implement.add_argument("--model", default=None, help="Model name or identifier to target.")
    implement.add_argument(
        "--base-url",
        dest="base_url",
        default=None,
        help="Optional base URL for API-compatible providers.",
    )

    serve = subparsers.add_parser(
        "serve",
        help="Start the HTTP API.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        allow_abbrev=False,
    )
    serve.add_argument("--host", default=None, help="Bind address. Defaults to HOST or 127.0.0.1.")
    serve.add_argument("--port", type=int, default=None, help="Port. Defaults to PORT or 3001.")
    return parser


def _build_config(args: argparse.Namespace) -> AppConfig:
    config = AppConfig.from_env()
    if getattr(args, "provider", None):
        config.llm = replace(config.llm, provider=args.provider)
    if getattr(args, "model", None):
        config.llm = replace(config.llm, model=args.model)
    if getattr(args, "base_url", None):
        config.llm = replace(config.llm, base_url=args.base_url)
    if getattr(args, "output_dir", None):
        config.pipeline = replace(config.pipeline, publish_dir=Path(args.output_dir))
        config.gist = replace(config.gist, token=None)
    if getattr(args, "host", None):
        config.server = replace(config.server, host=args.host)
    if getattr(args, "port", None):
        config.server = replace(config.server, port=args.port)
    return config


def _run_implement(config: AppConfig, input_path: str) -> int:
    paper = load_paper_text(input_path)
    orchestrator = build_orchestrator(config)
    result = asyncio.run(orchestrator.run(paper.content))
    print(json.dumps(result.to_response(), ensure_ascii=False, indent=2))
    return 0


def _run_serve(config: AppConfig) -> int:
    import uvicorn

    from .server import create_app

    uvicorn.run(create_app(config=config), host=config.server.host, port=config.server.port)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    config = _build_config(args)
    try:
        if args.command == "implement":
            return _run_implement(config, args.input)
        return _run_serve(config)
    except (FileNotFoundError, ValueError, PipelineError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
