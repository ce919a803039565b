import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

_TEMP_PREFIX = ".pagepeeker-"


def ensure_parent_dir(path: str | Path) -> Path:
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)
    return destination


def write_image_bytes(path: str | Path, content: bytes) -> int:
    """Write ``content`` to ``path`` through a temp file in the same directory.

    The destination is replaced in one step, so readers never observe a partial
    image. The temp name does not depend on the target name, so any target name
    the filesystem accepts can be written. Returns the number of bytes written;
    raises ``OSError`` on failure.
    """
    destination = ensure_parent_dir(path)
    fd, tmp_name = tempfile.mkstemp(prefix=_TEMP_PREFIX, suffix=".part", dir=str(destination.parent))
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        with open(tmp_path, "wb") as handle:
            handle.write(content)
        os.replace(tmp_path, destination)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()
    logger.debug("thumbnail_bytes_written", extra={"path": str(destination), "bytes": len(content)})
    return len(content)


def delete_file(path: str | Path) -> bool:
    target = Path(path)
    if not target.is_file():
        return False
    target.unlink()
    logger.info("stale_thumbnail_removed", extra={"path": str(target)})
    return True
