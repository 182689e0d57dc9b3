"""Cost-aware yield optimizer for SOL/JitoSOL strategies."""

from typing import NoReturn

__version__ = "0.1.0"


def _entry_point() -> NoReturn:
    """Entry point for the yield-optimizer script."""
    import sys

    from yield_optimizer.cli import main

    raise SystemExit(main(sys.argv[1:]))


def _clear_history_entry_point() -> NoReturn:
    """Entry point for clearing rate history and the decision log."""
    from yield_optimizer.storage import clear_data

    clear_data()
    raise SystemExit(0)
