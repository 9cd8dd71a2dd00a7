"""Price-gated milestone vault with manipulation-resistant TWAP pricing."""

from typing import NoReturn

__version__ = "0.1.0"


def _entry_point() -> NoReturn:
    """Entry point for the fairnomics script."""
    import sys

    from fairnomics.cli import main

    raise SystemExit(main(sys.argv[1:]))


def _clear_cache_entry_point() -> NoReturn:
    """Entry point for clearing the cache."""
    from fairnomics.cache import clear_cache

    clear_cache()
    raise SystemExit(0)
