"""arXiv URL helpers.

Papers are arXiv-only for now: the PDF cache and the metadata fetch both key
off a direct ``https://arxiv.org/pdf/<id>.pdf`` link.
"""

from urllib.parse import urlparse


def normalize_arxiv_pdf_url(raw):
    """Turn common arXiv links into a direct PDF URL.

    - ``/abs/<id>`` → ``/pdf/<id>.pdf``
    - ``/pdf/<id>`` without the suffix → ``/pdf/<id>.pdf``

    Anything else is returned trimmed and otherwise unchanged.
    """
    s = (raw or "").strip()
    if not s:
        return s

    if "arxiv.org/abs/" in s:
        out = s.replace("arxiv.org/abs/", "arxiv.org/pdf/")
        if not out.lower().endswith(".pdf"):
            out += ".pdf"
        return out

    if "arxiv.org/pdf/" in s and not s.lower().endswith(".pdf"):
        return s + ".pdf"

    return s


def is_valid_arxiv_pdf_url(value):
    """True for https URLs on arxiv.org whose path contains /pdf/ and ends in .pdf."""
    try:
        parsed = urlparse((value or "").strip())
    except ValueError:
        return False
    if parsed.scheme.lower() != "https":
        return False
    if (parsed.hostname or "").lower() != "arxiv.org":
        return False
    path = parsed.path.lower()
    return "/pdf/" in path and path.endswith(".pdf")
