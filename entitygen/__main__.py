# File: entitygen/__main__.py
"""
entitygen - Module entry point.

Allows running the compiler directly via::

    python -m entitygen --schema schemas/ --output ./app

This module simply delegates to the CLI entry point defined in ``entitygen.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from entitygen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
