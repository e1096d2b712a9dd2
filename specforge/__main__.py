# File: specforge/__main__.py
"""
SpecForge — Module entry point.

Allows running the compiler directly via::

    python -m specforge --spec openapi.yaml --output ./generated

This module simply delegates to the CLI entry point defined in ``specforge.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from specforge.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
