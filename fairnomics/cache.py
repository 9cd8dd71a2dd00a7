"""On-disk cache for immutable chain reads: ERC-20 decimals and pool token order."""

import hashlib
import json
import os
import shutil
import sys
from pathlib import Path
from typing import Any

from fairnomics.constants import CACHE_DIR_NAME, CACHE_VERSION

# What may be cached, keyed by contract address. Both never change once a contract is deployed.
DECIMALS = "decimals"
POOL_TOKENS = "pool_tokens"
CACHE_KINDS = (DECIMALS, POOL_TOKENS)


def get_cache_dir() -> Path:
    """Cache directory under XDG_CACHE_HOME, or ~/.cache when unset."""
    cache_home = os.getenv("XDG_CACHE_HOME")
    base = Path(cache_home) if cache_home else Path.home() / ".cache"
    cache_dir = base / CACHE_DIR_NAME
    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir


def clear_cache() -> None:
    cache_dir = get_cache_dir()
    if any(cache_dir.iterdir()):
        shutil.rmtree(cache_dir)
        print("✅ Cache cleared successfully.", file=sys.stderr)
    else:
        print("ℹ️  Cache is already empty (nothing to clear).", file=sys.stderr)


def entry_path(kind: str, address: str) -> Path:
    """File holding `kind` for `address`; addresses are matched case-insensitively."""
    if kind not in CACHE_KINDS:
        raise ValueError(f"unknown cache kind {kind!r}, expected one of {CACHE_KINDS}")
    digest = hashlib.sha256(f"{CACHE_VERSION}:{address.lower()}".encode()).hexdigest()[:32]
    return get_cache_dir() / f"{kind}-{digest}.json"


def read_entry(kind: str, address: str) -> Any | None:
    """Cached value, or None if missing or unreadable."""
    path = entry_path(kind, address)
    if not path.exists():
        return None
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        # corrupted entry, treat as a miss
        return None


def write_entry(kind: str, address: str, value: Any) -> None:
    path = entry_path(kind, address)
    try:
        with path.open("w", encoding="utf-8") as f:
            json.dump(value, f, separators=(",", ":"))
    except OSError as ex:
        # a failed write only costs a refetch
        print(f"⚠️  Could not write cache entry {path.name}: {ex}", file=sys.stderr)
