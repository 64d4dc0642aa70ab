"""
File access for a vault: a directory of markdown notes.

All paths handed to and returned by ``Vault`` are relative to the vault root
and use forward slashes, the same way note-taking apps address files.
"""
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import VaultPathError

logger = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r"^---\r?\n([\s\S]*?)\r?\n---")


def normalize_path(path: str) -> str:
    """Normalize a vault path: forward slashes, no empty or ``.`` segments."""
    parts = [p for p in str(path).replace("\\", "/").split("/") if p and p != "."]
    return "/".join(parts)


def parse_frontmatter(content: str) -> Optional[Dict[str, Any]]:
    """
    Parse the YAML frontmatter at the top of a note.

    Returns:
        The frontmatter mapping, or None when the note has no frontmatter or
        it is not valid YAML.
    """
    match = FRONTMATTER_RE.match(content)
    if not match:
        return None
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        logger.warning(f"Invalid YAML frontmatter: {e}")
        return None
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("Frontmatter is not a mapping")
        return None
    return data


def dump_frontmatter(data: Dict[str, Any]) -> str:
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=None)


def replace_frontmatter(content: str, data: Dict[str, Any]) -> str:
    """Swap the frontmatter block of a note for ``data``."""
    block = f"---\n{dump_frontmatter(data)}---"
    if FRONTMATTER_RE.match(content):
        return FRONTMATTER_RE.sub(lambda _m: block, content, count=1)
    return f"{block}\n\n{content}"


class Vault:
    """Read and write notes below a root directory."""

    def __init__(self, root: str):
        self.root = Path(root)

    def _full_path(self, path: str) -> Path:
        normalized = normalize_path(path)
        full = (self.root / normalized).resolve() if normalized else self.root.resolve()
        root = self.root.resolve()
        if full != root and root not in full.parents:
            raise VaultPathError(f"Path escapes the vault: {path}")
        return full

    def exists(self, path: str) -> bool:
        return self._full_path(path).exists()

    def is_folder(self, path: str) -> bool:
        return self._full_path(path).is_dir()

    def is_file(self, path: str) -> bool:
        return self._full_path(path).is_file()

    def read(self, path: str) -> str:
        return self._full_path(path).read_text(encoding="utf-8")

    def write(self, path: str, content: str) -> str:
        """Write a file, creating parent folders and replacing any old content."""
        full = self._full_path(path)
        full.parent.mkdir(parents=True, exist_ok=True)
        full.write_text(content, encoding="utf-8")
        return normalize_path(path)

    def create(self, path: str, content: str) -> str:
        """Create a new file; fails if it already exists."""
        full = self._full_path(path)
        if full.exists():
            raise FileExistsError(f"File already exists: {normalize_path(path)}")
        full.parent.mkdir(parents=True, exist_ok=True)
        with open(full, "x", encoding="utf-8") as f:
            f.write(content)
        return normalize_path(path)

    def mkdir(self, path: str) -> None:
        self._full_path(path).mkdir(parents=True, exist_ok=True)

    def ensure_folder(self, path: str) -> None:
        """Create every missing folder along ``path``."""
        current = ""
        for part in normalize_path(path).split("/"):
            if not part:
                continue
            current = f"{current}/{part}" if current else part
            full = self._full_path(current)
            if not full.exists():
                full.mkdir()
            elif not full.is_dir():
                raise NotADirectoryError(f"Path {current} exists but is not a folder")

    def list_markdown_files(self, folder: str) -> List[str]:
        """All markdown files below ``folder``, recursively, in sorted order."""
        base = self._full_path(folder)
        if not base.is_dir():
            return []
        root = self.root.resolve()
        files = [p for p in base.rglob("*.md") if p.is_file()]
        return sorted(p.relative_to(root).as_posix() for p in files)

    def read_frontmatter(self, path: str) -> Optional[Dict[str, Any]]:
        return parse_frontmatter(self.read(path))

    def basename(self, path: str) -> str:
        """File name without extension."""
        return Path(normalize_path(path)).stem
