"""
Storage and listing of uploaded files.

Files are stored per form under ``<base_directory>/<form_name>/``. Every path
that comes from a template argument or a URL is resolved and checked to stay
inside the base directory before it is touched.
"""

from __future__ import annotations

import logging
import os
import re
import secrets
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from flash_forms.config import UploadsConfig
from flash_forms.exceptions import FileUploadError

logger = logging.getLogger(__name__)

# Version control artefacts never listed, whatever the dotfile rule says
_VCS_NAMES = frozenset(
    {
        ".git",
        ".gitignore",
        ".gitattributes",
        ".gitmodules",
        ".hg",
        ".hgignore",
        ".svn",
        "_svn",
        "CVS",
        "_darcs",
        ".arch-params",
        ".monotone",
        ".bzr",
    }
)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class UploadListing:
    path: Path
    directories: list[Path] = field(default_factory=list)
    files: list[Path] = field(default_factory=list)


def secure_filename(filename: str) -> str:
    """Reduce an uploaded file name to a safe basename."""
    name = Path(filename.replace("\\", "/")).name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or "upload"


class UploadManager:
    def __init__(self, config: UploadsConfig) -> None:
        self.config = config

    @property
    def base_directory(self) -> Path | None:
        if self.config.base_directory is None:
            return None
        return Path(self.config.base_directory).resolve()

    def _inside_base(self, path: Path) -> Path | None:
        base = self.base_directory
        if base is None:
            return None
        try:
            resolved = path.resolve()
        except (OSError, ValueError) as exc:
            # ValueError: embedded null byte
            logger.warning("Rejected unresolvable upload path %r: %s", str(path), exc)
            return None
        if resolved != base and not resolved.is_relative_to(base):
            logger.warning("Rejected upload path outside of base directory: %s", path)
            return None
        return resolved

    def target_filename(self, filename: str) -> str:
        safe = secure_filename(filename)
        handling = self.config.filename_handling
        if handling == "keep":
            return safe
        token = secrets.token_hex(6)
        if handling == "prefix":
            return f"{token}_{safe}"
        stem, dot, suffix = safe.rpartition(".")
        if not dot or not stem:
            return f"{safe}_{token}"
        return f"{stem}_{token}.{suffix}"

    def save(self, form_name: str, upload: Any) -> Path:
        """
        Store an uploaded file (anything with ``filename`` and ``file``).

        Raises:
            FileUploadError: When uploads are disabled, misconfigured, or the
                file cannot be written.
        """
        if not self.config.enabled:
            raise FileUploadError("File uploads are disabled for this site")
        base = self.base_directory
        if base is None:
            raise FileUploadError("Uploads are enabled but no base_directory is set")

        directory = self._inside_base(base / form_name)
        if directory is None:
            raise FileUploadError(f"Invalid upload directory for form '{form_name}'")

        target = directory / self.target_filename(upload.filename)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            upload.file.seek(0)
            with target.open("wb") as out:
                shutil.copyfileobj(upload.file, out)
        except OSError as exc:
            raise FileUploadError(f"Unable to store '{upload.filename}': {exc}") from exc

        logger.info("Stored upload %s for form %s", target.name, form_name)
        return target

    def resolve_directory(self, form_name: str | None = None) -> Path | None:
        """Existing upload directory for ``form_name``, or None if invalid."""
        base = self.base_directory
        if base is None:
            return None
        directory = self._inside_base(base / form_name if form_name else base)
        if directory is None or not directory.is_dir():
            return None
        return directory

    def resolve_file(self, form_name: str, filename: str) -> Path | None:
        directory = self.resolve_directory(form_name)
        if directory is None:
            return None
        path = self._inside_base(directory / filename)
        if path is None or not path.is_file() or path.parent != directory:
            return None
        return path

    def list_directory(self, directory: Path) -> UploadListing:
        """Direct children of ``directory``, without dotfiles or VCS entries."""
        listing = UploadListing(path=directory)
        for entry in sorted(directory.iterdir(), key=lambda p: p.name.lower()):
            if entry.name.startswith(".") or entry.name in _VCS_NAMES:
                continue
            if not os.access(entry, os.R_OK):
                continue
            if entry.is_dir():
                listing.directories.append(entry)
            elif entry.is_file():
                listing.files.append(entry)
        return listing
