"""CLI entry point for filetail."""

import sys


def main() -> int:
    """Main entry point for the filetail CLI."""
    from filetail.cli import run_cli

    return run_cli(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
