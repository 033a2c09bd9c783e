"""Shared utilities: paths, colors, output formatting, file discovery."""

import os
import sys
import tempfile
from functools import lru_cache
from pathlib import Path

PROJECT_ROOT = Path(os.environ.get("PEEKLINT_ROOT", Path.cwd())).resolve()
DEFAULT_PATH = PROJECT_ROOT

RUST_EXTENSIONS = (".rs",)

# Directories pruned during traversal.
DEFAULT_EXCLUSIONS = frozenset({
    "target", ".git", ".cargo", "node_modules", "__pycache__",
    ".venv", "venv", ".svn", ".hg", ".peeklint",
})

# Extra exclusions set via --exclude CLI flag, applied to all file discovery
_extra_exclusions: tuple[str, ...] = ()


def set_exclusions(patterns: list[str]):
    """Set global exclusion patterns (called once from CLI at startup)."""
    global _extra_exclusions
    _extra_exclusions = tuple(patterns)
    _find_source_files_cached.cache_clear()


# ── Atomic file writes ─────────────────────────────────────


def safe_write_bytes(filepath: str | Path, data: bytes) -> None:
    """Atomically write bytes to a file using temp+rename."""
    p = Path(filepath)
    p.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=p.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp, str(p))
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def safe_write_text(filepath: str | Path, content: str) -> None:
    safe_write_bytes(filepath, content.encode("utf-8"))


# ── Terminal output ─────────────────────────────────────────

COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "cyan": "\033[36m",
}

NO_COLOR = os.environ.get("NO_COLOR") is not None


def colorize(text: str, color: str) -> str:
    if NO_COLOR or not sys.stdout.isatty():
        return str(text)
    return f"{COLORS.get(color, '')}{text}{COLORS['reset']}"


def log(msg: str):
    """Print a dim status message to stderr."""
    print(colorize(msg, "dim"), file=sys.stderr)


def warn(msg: str):
    print(colorize(f"  Warning: {msg}", "yellow"), file=sys.stderr)


def print_error(msg: str):
    print(colorize(f"  Error: {msg}", "red"), file=sys.stderr)


# ── Paths ───────────────────────────────────────────────────


def rel(path: str) -> str:
    try:
        return str(Path(path).resolve().relative_to(PROJECT_ROOT)).replace("\\", "/")
    except ValueError:
        # Path outside PROJECT_ROOT: fall back to a relpath
        return os.path.relpath(str(Path(path).resolve()), str(PROJECT_ROOT)).replace("\\", "/")


def resolve_path(filepath: str) -> str:
    """Resolve a filepath to absolute, handling both relative and absolute."""
    p = Path(filepath)
    if p.is_absolute():
        return str(p.resolve())
    return str((PROJECT_ROOT / filepath).resolve())


def matches_exclusion(rel_path: str, exclusion: str) -> bool:
    """Check if a relative path matches an exclusion pattern (path-component aware).

    Matches if exclusion is a path component (e.g. "benches" matches
    "benches/foo.rs" or "src/benches/bar.rs") or a directory prefix (e.g.
    "src/gen" matches "src/gen/bar.rs"). Does NOT do substring matching —
    "test" will NOT match "testimony.rs".
    """
    parts = Path(rel_path).parts
    if exclusion in parts:
        return True
    if "/" in exclusion or os.sep in exclusion:
        normalized = exclusion.rstrip("/").rstrip(os.sep)
        return (rel_path == normalized
                or rel_path.startswith(normalized + "/")
                or rel_path.startswith(normalized + os.sep))
    return False


def _is_excluded_dir(name: str, rel_path: str, extra: tuple[str, ...]) -> bool:
    """Check if a directory should be pruned during traversal."""
    if name in DEFAULT_EXCLUSIONS:
        return True
    if extra and any(matches_exclusion(rel_path, ex) or ex == name for ex in extra):
        return True
    return False


@lru_cache(maxsize=16)
def _find_source_files_cached(path: str, extensions: tuple[str, ...],
                              exclusions: tuple[str, ...] | None = None,
                              extra_exclusions: tuple[str, ...] = ()) -> tuple[str, ...]:
    """Cached file discovery using os.walk — prunes during traversal."""
    root = Path(path)
    if not root.is_absolute():
        root = PROJECT_ROOT / root
    all_exclusions = (exclusions or ()) + extra_exclusions
    if root.is_file():
        if root.suffix in extensions:
            return (rel(str(root)),)
        return ()
    files: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = os.path.relpath(dirpath, PROJECT_ROOT).replace("\\", "/")
        dirnames[:] = sorted(
            d for d in dirnames
            if not _is_excluded_dir(d, rel_dir + "/" + d, all_exclusions)
        )
        for fname in filenames:
            if any(fname.endswith(ext) for ext in extensions):
                full = os.path.join(dirpath, fname)
                rel_file = os.path.relpath(full, PROJECT_ROOT).replace("\\", "/")
                if all_exclusions and any(matches_exclusion(rel_file, ex) for ex in all_exclusions):
                    continue
                files.append(rel_file)
    return tuple(sorted(files))


def find_source_files(path: str | Path, extensions: list[str] | tuple[str, ...],
                      exclusions: list[str] | None = None) -> list[str]:
    """Find all files with given extensions under a path, excluding patterns."""
    # Pass _extra_exclusions as part of the cache key so changes invalidate cached results
    return list(_find_source_files_cached(
        str(path), tuple(extensions), tuple(exclusions) if exclusions else None,
        _extra_exclusions))


def find_rs_files(path: str | Path, exclusions: list[str] | None = None) -> list[str]:
    """Find all .rs files under a path (or the path itself if it is a file)."""
    return find_source_files(path, RUST_EXTENSIONS, exclusions)
