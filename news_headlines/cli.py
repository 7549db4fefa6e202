"""Command-line interface for the news_headlines application."""

from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from .client import DEFAULT_BASE_URL, HeadlinesClient
from .config import load_settings, parse_env_config
from .models import Category
from .service import HeadlineService

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Serve Google News headlines with optional AI rewriting."
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Optional XML file with <variable name=...> entries merged into the environment.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g. DEBUG, INFO, WARNING). Overrides LOG_LEVEL.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Optional path to a log file. Overrides LOG_FILE.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the web server.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)
    serve.add_argument("--debug", action="store_true")

    fetch = subparsers.add_parser(
        "fetch", help="Print the headlines JSON for one category."
    )
    fetch.add_argument(
        "--category",
        default=Category.LOCAL.value,
        help="One of: " + ", ".join(category.value for category in Category),
    )
    fetch.add_argument(
        "--base-url",
        default=None,
        help="Read from a running server instead of fetching feeds in-process.",
    )

    check = subparsers.add_parser(
        "check-enhancer",
        help="Call a running server's diagnostic endpoint and print the rewrites.",
    )
    check.add_argument("--base-url", default=DEFAULT_BASE_URL)

    return parser


def configure_logging(level_name: str, log_file: Optional[str] = None) -> None:
    """Initialise logging according to options."""
    log_level = getattr(logging, level_name.upper(), None)
    if not isinstance(log_level, int):
        raise ValueError(f"Unsupported log level: {level_name}")

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(log_level)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        if log_path.parent and not log_path.parent.exists():
            log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        logger.debug(
            "Logger initialised with level %s and file output to %s",
            level_name.upper(),
            log_path,
        )
    else:
        logger.debug(
            "Logger initialised with console output at level %s", level_name.upper()
        )


def format_report(payload: dict) -> str:
    """Render the diagnostic payload as readable text."""
    lines = [
        "Headline Enhancement Test Results:",
        "==================================",
        f"AI enhancement enabled: {payload.get('enabled')}",
        f"OpenAI API Key configured: {payload.get('apiKeySet')}",
        "",
    ]
    for index, result in enumerate(payload.get("results") or [], start=1):
        lines.append(f"Example {index}:")
        lines.append(f"Original: {result.get('original')}")
        lines.append(f"Enhanced: {result.get('enhanced')}")
        lines.append("")
    if payload.get("error"):
        lines.append(f"Error: {payload['error']}")
        if payload.get("message"):
            lines.append(f"Message: {payload['message']}")
    return "\n".join(lines)


def _serve(args, settings) -> int:
    from .web import create_app

    app = create_app(settings)
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


def _fetch(args, settings) -> int:
    category = Category.parse(args.category)
    if args.base_url:
        headlines = HeadlinesClient(args.base_url).fetch(category)
        payload = {
            "headlines": [headline.to_dict() for headline in headlines],
            "category": category.value,
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0

    payload, status = HeadlineService(settings).get_headlines(category)
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0 if status == 200 else 1


def _check_enhancer(args, settings) -> int:
    payload, status = HeadlinesClient(args.base_url).enhancement_report()
    print(format_report(payload))
    return 0 if status == 200 else 1


_COMMANDS = {
    "serve": _serve,
    "fetch": _fetch,
    "check-enhancer": _check_enhancer,
}


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.env_file:
            os.environ.update(parse_env_config(args.env_file))

        settings = load_settings()

        # CLI overrides environment
        log_level = args.log_level or settings.logging.level
        log_file = args.log_file or settings.logging.file
        configure_logging(log_level, log_file)

        logger.info(
            "Enhancement %s; %d feed override(s)",
            "enabled" if settings.enhancer.active else "disabled",
            len(settings.feed_overrides),
        )
        return _COMMANDS[args.command](args, settings)
    except ValueError as exc:
        parser.error(str(exc))
    except (RuntimeError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error during execution.")
        return 1
