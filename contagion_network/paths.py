"""Path helpers for result files."""

from pathlib import Path


def resolve_indexed(path: Path | str) -> Path:
    """Return ``path`` if free, else the first free ``name (i).ext`` beside it."""
    path = Path(path)
    if not path.exists():
        return path

    base, ext = path.stem, path.suffix
    i = 1
    while True:
        candidate = path.with_name(f"{base} ({i}){ext}")
        if not candidate.exists():
            return candidate
        i += 1
