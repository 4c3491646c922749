"""Lists and resolves downloaded files inside the download directory."""
from pathlib import Path
from typing import List, Optional


def list_downloaded_files(download_dir: Path) -> List[str]:
    """Returns the relative paths (POSIX style) of all files below `download_dir`."""
    if not download_dir.is_dir():
        return []
    return sorted(
        path.relative_to(download_dir).as_posix()
        for path in download_dir.rglob('*')
        if path.is_file()
    )


def resolve_download(download_dir: Path, relative_path: str) -> Optional[Path]:
    """
    Resolves a client-supplied path to a file inside the download directory.

    Returns:
        The resolved file path, or None if it does not exist, is not a file,
        or escapes the download directory.
    """
    try:
        base = download_dir.resolve(strict=True)
        candidate = (download_dir / relative_path).resolve(strict=True)
    except (OSError, RuntimeError):
        return None
    if candidate != base and base not in candidate.parents:
        return None
    return candidate if candidate.is_file() else None
