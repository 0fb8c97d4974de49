"""
File system operations for Lightsift
Handles finding image files in a folder and locating their sidecars
"""

import uuid
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

from lightsift.io.raw import is_raw_extension, is_supported_extension

logger = logging.getLogger(__name__)


@dataclass
class ImageFile:
    """Descriptor for an image found by a directory scan"""
    id: str
    path: str
    filename: str
    extension: str
    file_size: int
    modified_at: str
    is_raw: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_path(cls, path: Union[str, Path], file_id: Optional[str] = None) -> 'ImageFile':
        """Describe a single file on disk"""
        path = Path(path)
        stat = path.stat()
        extension = path.suffix.lower().lstrip('.')
        return cls(
            id=file_id or str(uuid.uuid4()),
            path=str(path),
            filename=path.name,
            extension=extension,
            file_size=stat.st_size,
            modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
            is_raw=is_raw_extension(extension),
        )


def scan_directory(input_path: Union[str, Path]) -> List[ImageFile]:
    """
    Find all supported image files directly inside a directory

    Args:
        input_path: Directory to scan (not recursive)

    Returns:
        Descriptors sorted by filename

    Raises:
        ValueError: if the path is missing or not a directory
    """
    input_path = Path(input_path)

    if not input_path.exists():
        raise ValueError(f"Path does not exist: {input_path}")
    if not input_path.is_dir():
        raise ValueError(f"Path is not a directory: {input_path}")

    files = []
    for entry in input_path.iterdir():
        if not entry.is_file() or not entry.suffix:
            continue
        if not is_supported_extension(entry.suffix):
            continue
        try:
            files.append(ImageFile.from_path(entry))
        except OSError as e:
            logger.warning(f"Skipping unreadable file {entry}: {e}")

    files.sort(key=lambda f: f.filename)
    logger.info(f"Found {len(files)} image files in {input_path}")
    return files


def xmp_path_for(image_path: Union[str, Path]) -> Path:
    """Sidecar location for an image: ``<stem>.xmp`` next to it"""
    image_path = Path(image_path)
    return image_path.with_name(f"{image_path.stem}.xmp")
