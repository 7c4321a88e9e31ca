# File: zerogen/__main__.py
"""
ZeroGen - Module entry point.

Allows running the generator directly via::

    python -m zerogen mutations --database-url sqlite:///app.db -o ./zero

This module simply delegates to the CLI entry point defined in ``zerogen.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from zerogen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
