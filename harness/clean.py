"""Cache cleanup utilities for the staging test suite.

Three caches can grow over time:
- Toolchains: unpacked Maven installations (target/toolchain)
- Archives: downloaded Maven distribution archives
- Local caches: per-test local Maven repositories (target/local-cache)
"""

import shutil
from pathlib import Path
from typing import Dict, List, Tuple

from .config import Config, get_config


def get_cache_info(cache_dir: Path) -> List[Tuple[Path, int]]:
    """Get info about items in a cache directory.

    Args:
        cache_dir: Path to cache directory.

    Returns:
        List of (path, size_bytes) tuples.
    """
    items = []
    if not cache_dir.exists():
        return items

    for item in cache_dir.iterdir():
        if item.is_dir():
            size = sum(f.stat().st_size for f in item.rglob('*') if f.is_file())
            items.append((item, size))
        elif item.is_file():
            items.append((item, item.stat().st_size))

    return sorted(items, key=lambda x: x[0].name)


def get_cache_info_totals(cache_dir: Path) -> Tuple[int, int]:
    """Get total count and size for a cache directory."""
    items = get_cache_info(cache_dir)
    return len(items), sum(size for _, size in items)


def format_size(size_bytes: float) -> str:
    """Format a size in bytes to human-readable string."""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} TB"


def cache_dirs(config: Config) -> Dict[str, Path]:
    """Cache name -> directory, in display order."""
    return {
        "toolchains": config.toolchain_home_dir,
        "archives": config.archive_cache_dir,
        "local-cache": config.local_cache_dir,
    }


def clean_directory(cache_dir: Path, dry_run: bool = False) -> Tuple[int, int]:
    """Clean a cache directory.

    Args:
        cache_dir: Path to cache directory.
        dry_run: If True, only report what would be deleted.

    Returns:
        Tuple of (items_removed, bytes_freed).
    """
    if not cache_dir.exists():
        return 0, 0

    items = get_cache_info(cache_dir)
    total_items = len(items)
    total_bytes = sum(size for _, size in items)

    if dry_run:
        return total_items, total_bytes

    for item, _ in items:
        if item.is_dir():
            shutil.rmtree(item, ignore_errors=True)
        else:
            item.unlink(missing_ok=True)

    return total_items, total_bytes


def list_cache_contents(config=None):
    """List contents of all cache directories."""
    if config is None:
        config = get_config()

    print("Cache Contents")
    print("=" * 60)

    for name, cache_dir in cache_dirs(config).items():
        print(f"\n{name.capitalize()}: {cache_dir}")
        if not cache_dir.exists():
            print("  (not created)")
            continue
        items = get_cache_info(cache_dir)
        if not items:
            print("  (empty)")
            continue
        total = 0
        for path, size in items:
            print(f"  {path.name:30} {format_size(size):>10}")
            total += size
        print(f"  {'─' * 42}")
        print(f"  {'Total':30} {format_size(total):>10}")
