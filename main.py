"""Thin shim for IDEs and direct execution."""

from news_headlines.cli import main

if __name__ == "__main__":
    import sys

    # Default to serving with debug logging when run without a subcommand.
    if len(sys.argv) == 1:
        sys.argv.extend(["--log-level", "DEBUG", "serve"])

    sys.exit(main())
