"""Project file service — open and save ``.json`` project files on disk.

save_project writes to a temporary file beside the target, fsyncs it and
renames it over the target, so a crash mid-write leaves either the old file
or the new one, never half of either.
"""
import logging
import os
import tempfile

from anning.core.exceptions import ExportWriteError, UnreadableDocumentError
from anning.services.project_io import export_json, import_json

logger = logging.getLogger(__name__)

PROJECT_SUFFIX = ".json"


def read_project_bytes(path):
    """Read a project file as text. Raises UnreadableDocumentError."""
    try:
        with open(path, "rb") as fh:
            data = fh.read()
    except OSError as exc:
        raise UnreadableDocumentError(f"Cannot read project file {path}: {exc}") from exc
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise UnreadableDocumentError(f"Project file {path} is not UTF-8 text") from exc


def load_project(session, path):
    """Open a project file, replacing the store. Returns the ImportReport.

    Raises:
        UnreadableDocumentError: the file cannot be read.
        MalformedDocumentError: the file is not a valid project document.
        CommitFailedError: the rebuilt store could not be committed.
    """
    text = read_project_bytes(path)
    report = import_json(session, text)
    logger.info("Opened project file %s", path, extra={"project_path": path})
    return report


def write_atomic(path, text):
    """Write ``text`` to ``path`` via temp file + rename. Raises ExportWriteError."""
    path = os.path.abspath(path)
    directory = os.path.dirname(path)
    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{os.path.basename(path)}.", suffix=".tmp", dir=directory,
        )
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, path)
        tmp_path = None
    except OSError as exc:
        raise ExportWriteError(f"Cannot write project file {path}: {exc}") from exc
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
    return path


def save_project(session, path, indent=2):
    """Export the store to ``path`` atomically. Returns the absolute path written."""
    if not str(path).lower().endswith(PROJECT_SUFFIX):
        path = f"{path}{PROJECT_SUFFIX}"
    text = export_json(session, indent=indent)
    written = write_atomic(path, text)
    logger.info("Saved project file %s (%d bytes)", written, len(text.encode("utf-8")),
                extra={"project_path": written})
    return written
