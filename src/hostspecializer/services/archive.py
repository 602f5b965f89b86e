"""Zip extraction helpers for HostSpecializer."""

import os
import shutil
import zipfile
from pathlib import Path

from hostspecializer.errors import SpecializationError

_SYMLINK_MODE = 0o120000
_FILE_TYPE_MASK = 0o170000


class ArchiveService:
    """Extracts zip packages over an existing script directory."""

    def _resolve_member(self, base: Path, member: zipfile.ZipInfo) -> Path:
        target = (base / member.filename.replace("\\", "/")).resolve()
        try:
            inside = os.path.commonpath([str(base), str(target)]) == str(base)
        except ValueError:
            inside = False

        if not inside:
            raise SpecializationError(
                f"Unsafe zip entry `{member.filename}` escapes the target directory."
            )
        if (member.external_attr >> 16) & _FILE_TYPE_MASK == _SYMLINK_MODE:
            raise SpecializationError(f"Unsafe zip entry `{member.filename}` is a symbolic link.")
        return target

    def extract_zip(self, zip_path: str, target_dir: str) -> int:
        """Extract every member, overwriting files already present. Returns the file count."""
        base = Path(target_dir).resolve()
        base.mkdir(parents=True, exist_ok=True)
        written = 0

        try:
            with zipfile.ZipFile(zip_path, "r") as package:
                members = [(member, self._resolve_member(base, member)) for member in package.infolist()]

                for member, target in members:
                    if member.is_dir() or member.filename.replace("\\", "/").endswith("/"):
                        target.mkdir(parents=True, exist_ok=True)
                        continue

                    target.parent.mkdir(parents=True, exist_ok=True)
                    with package.open(member, "r") as src, open(target, "wb") as dst:
                        shutil.copyfileobj(src, dst)
                    written += 1
        except zipfile.BadZipFile as exc:
            raise SpecializationError(f"Invalid zip package: {zip_path}") from exc

        return written
