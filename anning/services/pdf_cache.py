"""PDF cache — machine-local copies of each paper's PDF.

Files live at ``<ANNING_PDF_CACHE_DIR>/<paper_id>.pdf``. The path is stored on
``Paper.cached_file_path`` but never exported: another machine resolves its
own copy.

resolve_local_path order:
    1. ``cached_file_path`` when that file still exists
    2. the deterministic destination when it exists (path re-recorded)
    3. download ``remote_url`` (HTTP 2xx, body starting with ``%PDF``),
       write it atomically, record the path

Transaction policy: flush() only; the caller commits.
"""
import logging
import os
import tempfile

import requests
from flask import current_app

from anning.core.exceptions import FetchError
from anning.services.paper_service import get_paper

logger = logging.getLogger(__name__)

_DOWNLOAD_TIMEOUT = 60
_PDF_MAGIC = b"%PDF"


def cache_directory():
    """Return the cache directory, creating it if needed."""
    directory = os.path.abspath(current_app.config["ANNING_PDF_CACHE_DIR"])
    os.makedirs(directory, exist_ok=True)
    return directory


def destination_path(paper_id):
    return os.path.join(cache_directory(), f"{paper_id}.pdf")


def file_exists(path):
    return bool(path) and os.path.isfile(path)


def _write_bytes_atomic(path, data):
    directory = os.path.dirname(path)
    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(prefix=".download.", suffix=".tmp", dir=directory)
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, path)
        tmp_path = None
    except OSError as exc:
        raise FetchError(f"Cannot write cached PDF {path}: {exc}") from exc
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)


def download_pdf(remote_url, http=None):
    """Download ``remote_url`` and return its bytes. Raises FetchError."""
    http = http or requests
    try:
        resp = http.get(remote_url, timeout=_DOWNLOAD_TIMEOUT)
    except requests.RequestException as exc:
        raise FetchError(f"PDF download failed: {exc}") from exc

    if not 200 <= resp.status_code < 300:
        raise FetchError(f"PDF download failed: HTTP {resp.status_code}", status_code=resp.status_code)
    data = resp.content or b""
    if not data.startswith(_PDF_MAGIC):
        raise FetchError("Downloaded file is not a PDF", status_code=resp.status_code)
    return data


def resolve_local_path(session, paper_id, remote_url=None, http=None):
    """Return a local file path for the paper's PDF, downloading if needed.

    Args:
        session: SQLAlchemy session.
        paper_id: Paper to resolve.
        remote_url: URL to download from; defaults to the paper's source URL.
        http: ``requests`` or a ``requests.Session``-like object with ``.get``.

    Raises:
        NotFoundError: unknown paper.
        FetchError: no URL, download failure, or non-PDF content.
    """
    paper = get_paper(session, paper_id)

    if file_exists(paper.cached_file_path):
        return paper.cached_file_path
    if paper.cached_file_path:
        logger.info("Clearing stale cached path for paper %s: %s", paper.id, paper.cached_file_path,
                    extra={"paper_id": paper.id})
        paper.cached_file_path = None

    destination = destination_path(paper.id)
    if not file_exists(destination):
        url = (remote_url or paper.source_url or "").strip()
        if not url:
            session.flush()
            raise FetchError("Paper has no source URL to download")
        data = download_pdf(url, http=http)
        _write_bytes_atomic(destination, data)
        logger.info("Cached PDF for paper %s (%d bytes)", paper.id, len(data),
                    extra={"paper_id": paper.id})

    paper.cached_file_path = destination
    session.flush()
    return destination
