"""
Data caching system for the humanities enrolment analysis.

Reshaping the spreadsheet is the slow part of a run, so the cleaned tall
table can be checkpointed as a CSV and reloaded on the next run unless
--force-recompute is specified. The metadata file records which workbook
and sheet the table came from; a cache built from a different source is
never reused.

Usage:
    from cache_manager import use_cache, save_cache, load_from_cache

    if use_cache(force_recompute, source=path, sheet_index=sheet):
        filtered = load_from_cache()
    else:
        filtered = prepare_enrolments(path, sheet)
        save_cache(filtered, source=path, sheet_index=sheet)
"""

import time
from pathlib import Path

import pandas as pd

from humanities_shared import COUNT_FIELD, SHEET_INDEX

# Cache directory (relative to project root)
CACHE_DIR = Path("./data/cache")

# Metadata lines that identify where the cached table came from
SOURCE_KEY = "Source workbook"
SHEET_KEY = "Sheet index"
MTIME_KEY = "Source modified"
ROWS_KEY = "Enrolment rows"


def cache_files(cache_dir: Path = None) -> dict:
    cache_dir = Path(cache_dir) if cache_dir is not None else CACHE_DIR
    return {
        "enrolments": cache_dir / "enrolments_tall.csv",
        "metadata": cache_dir / "cache_metadata.txt",
    }


def cache_exists(cache_dir: Path = None) -> bool:
    """True if both the table and its metadata are present."""
    return all(path.exists() for path in cache_files(cache_dir).values())


def source_fingerprint(source: Path, sheet_index: int = SHEET_INDEX) -> dict:
    """
    Identify a workbook sheet for cache validation.

    The modification time is empty when the workbook does not exist.
    """
    path = Path(source).resolve()
    mtime = repr(path.stat().st_mtime) if path.exists() else ""
    return {SOURCE_KEY: str(path), SHEET_KEY: str(sheet_index), MTIME_KEY: mtime}


def read_metadata(cache_dir: Path = None) -> dict:
    """Parse the 'Key: value' lines of the metadata file."""
    text = cache_files(cache_dir)["metadata"].read_text(encoding="utf-8")
    meta = {}
    for line in text.splitlines():
        key, sep, value = line.partition(": ")
        if sep:
            meta[key.strip()] = value.strip()
    return meta


def save_cache(filtered: pd.DataFrame, source: Path = None, sheet_index: int = SHEET_INDEX,
               cache_dir: Path = None) -> None:
    """
    Save the cleaned enrolment table to cache as CSV.

    Args:
        filtered: Output of prepare_enrolments()
        source: Workbook the table was built from
        sheet_index: 0-based sheet the table was read from
    """
    files = cache_files(cache_dir)
    files["enrolments"].parent.mkdir(parents=True, exist_ok=True)

    print("\n[Cache] Saving data to cache...")
    filtered.to_csv(files["enrolments"], index=False)
    print(f"  Saved: {files['enrolments']} ({len(filtered)} rows)")

    lines = [f"Cache created: {time.ctime()}"]
    if source is not None:
        lines += [f"{k}: {v}" for k, v in source_fingerprint(source, sheet_index).items()]
    lines.append(f"{ROWS_KEY}: {len(filtered)}")
    files["metadata"].write_text("\n".join(lines) + "\n", encoding="utf-8")


def load_from_cache(cache_dir: Path = None) -> pd.DataFrame:
    """
    Load the cleaned enrolment table from cache.

    Raises:
        FileNotFoundError: If cache files don't exist
    """
    if not cache_exists(cache_dir):
        raise FileNotFoundError("Cache files not found. Use save_cache() first.")

    files = cache_files(cache_dir)
    print("\n[Cache] Loading data from cache...")

    df = pd.read_csv(files["enrolments"])

    # CSV loses the integer types
    if "year" in df.columns:
        df["year"] = df["year"].astype(int)
    if COUNT_FIELD in df.columns:
        df[COUNT_FIELD] = pd.to_numeric(df[COUNT_FIELD], errors="coerce").astype("Int64")

    print(f"  Loaded: {files['enrolments']} ({len(df)} rows)")
    return df


def stale_fields(source: Path, sheet_index: int = SHEET_INDEX, cache_dir: Path = None) -> list:
    """
    Compare the cached source against the requested one.

    Returns the metadata keys that differ. A missing workbook is only
    checked by path and sheet, so the cached table stays usable without it.
    """
    recorded = read_metadata(cache_dir)
    current = source_fingerprint(source, sheet_index)
    keys = [SOURCE_KEY, SHEET_KEY]
    if current[MTIME_KEY]:
        keys.append(MTIME_KEY)
    return [k for k in keys if recorded.get(k) != current[k]]


def use_cache(force_recompute: bool = False, cache_dir: Path = None,
              source: Path = None, sheet_index: int = SHEET_INDEX) -> bool:
    """
    Decide whether to reload the cached table or rebuild it from the workbook.

    With a source given, the cache is only reused when it was built from the
    same workbook path and sheet, and the workbook has not been modified since.
    """
    if force_recompute:
        print("\n[Cache] Force recompute requested - bypassing cache")
        return False

    if not cache_exists(cache_dir):
        print("\n[Cache] No cache found - will compute from source")
        return False

    if source is not None:
        changed = stale_fields(source, sheet_index, cache_dir)
        if changed:
            print("\n[Cache] Source changed - will compute from source")
            print(f"  Differs: {', '.join(changed)}")
            return False
        if not Path(source).exists():
            print(f"\n[WARN] {source} not found; using the table cached from it")

    print("\n[Cache] Cache found - loading from cache")
    print("  (Use --force-recompute to bypass cache)")
    return True


def clear_cache(cache_dir: Path = None) -> None:
    print("\n[Cache] Clearing cache...")
    for path in cache_files(cache_dir).values():
        if path.exists():
            path.unlink()
            print(f"  Deleted: {path}")


def get_cache_info(cache_dir: Path = None) -> dict:
    """
    Describe the current cache.

    Returns:
        {"status": "not_found"}, or the raw metadata text plus the recorded
        source, sheet index and row count
    """
    if not cache_exists(cache_dir):
        return {"status": "not_found"}

    meta = read_metadata(cache_dir)
    sheet = meta.get(SHEET_KEY)
    rows = meta.get(ROWS_KEY)
    return {
        "status": "found",
        "metadata": cache_files(cache_dir)["metadata"].read_text(encoding="utf-8"),
        "source": meta.get(SOURCE_KEY),
        "sheet_index": int(sheet) if sheet is not None else None,
        "rows": int(rows) if rows is not None else None,
    }
