"""Paper service — add / edit papers, notes, and fetched metadata.

Business rules (the same ones the add-paper form enforces):
- ``title`` is required.
- ``short_title`` is optional, at most 5 words.
- ``source_url`` is required; arXiv abs links are normalised to the PDF link
  and the result must be ``https://arxiv.org/pdf/<id>.pdf``.
- authors are ``{"firstName", "lastName"}`` pairs, trimmed; pairs with both
  names blank are dropped.
- ``paper_type`` must be one of ``PAPER_TYPES``.

New papers are appended to the end of the ungrouped scope.

Transaction policy: flush() only; the caller commits.
"""
import json
import logging

from anning.core.exceptions import NotFoundError, ValidationError
from anning.models.project import (
    DEFAULT_PAPER_TYPE, NOTE_SECTIONS, PAPER_TYPES, Paper,
)
from anning.services import ordering
from anning.utils.arxiv import is_valid_arxiv_pdf_url, normalize_arxiv_pdf_url

logger = logging.getLogger(__name__)

SHORT_TITLE_MAX_WORDS = 5

AUTHOR_SEPARATOR = " • "

# fetched metadata field → note section
METADATA_NOTE_SECTIONS = (
    ("motivation", "motivation"),
    ("experiment_setup", "experimentSetup"),
    ("methodology", "experimentMethod"),
    ("result", "results"),
    ("conclusion", "conclusion"),
)


# ── Helpers ──────────────────────────────────────────────────────────────────

def _text(data, field, errors):
    value = data.get(field)
    if value is None:
        return ""
    if not isinstance(value, str):
        errors[field] = "must be a string"
        return ""
    return value.strip()


def clean_authors(raw):
    """Return trimmed ``{"firstName", "lastName"}`` dicts, blanks dropped.

    Raises:
        ValidationError: ``raw`` is not a list of objects.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("authors must be a list", details={"authors": "invalid"})

    cleaned = []
    for index, author in enumerate(raw):
        if not isinstance(author, dict):
            raise ValidationError(
                "each author must be an object", details={f"authors[{index}]": "invalid"},
            )
        first = str(author.get("firstName") or "").strip()
        last = str(author.get("lastName") or "").strip()
        if first or last:
            cleaned.append({"firstName": first, "lastName": last})
    return cleaned


def parse_author_string(value):
    """Split a comma-separated author string into author dicts.

    "Ada Lovelace, Alan Turing" → [{"firstName": "Ada", "lastName": "Lovelace"}, ...].
    The last whitespace-separated token is taken as the last name.
    """
    authors = []
    for chunk in (value or "").replace(" and ", ",").split(","):
        parts = chunk.split()
        if not parts:
            continue
        authors.append({"firstName": " ".join(parts[:-1]), "lastName": parts[-1]})
    return authors


def authors_display(paper):
    """Render the author list as "Last, First • Last, First"."""
    names = []
    for author in paper.authors:
        if not isinstance(author, dict):
            continue
        first = str(author.get("firstName") or "").strip()
        last = str(author.get("lastName") or "").strip()
        if first and last:
            names.append(f"{last}, {first}")
        elif first or last:
            names.append(first or last)
    return AUTHOR_SEPARATOR.join(names)


def _validate(data, partial=False):
    """Validate paper input. Returns attribute → cleaned value.

    With ``partial=True`` only the fields present in ``data`` are checked
    and returned.
    """
    errors = {}
    values = {}

    def present(field):
        return not partial or field in data

    if present("title"):
        values["title"] = _text(data, "title", errors)
        if "title" not in errors and not values["title"]:
            errors["title"] = "required"

    if present("short_title"):
        values["short_title"] = _text(data, "short_title", errors)
        if len(values["short_title"].split()) > SHORT_TITLE_MAX_WORDS:
            errors["short_title"] = f"must be {SHORT_TITLE_MAX_WORDS} words or fewer"

    if present("abstract_text"):
        values["abstract_text"] = _text(data, "abstract_text", errors)

    if present("source_url"):
        url = normalize_arxiv_pdf_url(_text(data, "source_url", errors))
        if "source_url" not in errors:
            if not url:
                errors["source_url"] = "required"
            elif not is_valid_arxiv_pdf_url(url):
                errors["source_url"] = "must be https://arxiv.org/pdf/<id>.pdf"
        values["source_url"] = url

    if present("paper_type"):
        paper_type = _text(data, "paper_type", errors) or DEFAULT_PAPER_TYPE
        if paper_type not in PAPER_TYPES:
            errors["paper_type"] = f"must be one of {', '.join(PAPER_TYPES)}"
        values["paper_type"] = paper_type

    if errors:
        raise ValidationError("Invalid paper", details=errors)

    if present("authors"):
        values["authors_json"] = json.dumps(clean_authors(data.get("authors")), ensure_ascii=False)

    return values


# ── CRUD ─────────────────────────────────────────────────────────────────────

def get_paper(session, paper_id):
    paper = session.get(Paper, paper_id) if paper_id else None
    if paper is None:
        raise NotFoundError("Paper", paper_id)
    return paper


def list_papers(session):
    """All papers, newest first."""
    return session.query(Paper).order_by(Paper.created_at.desc(), Paper.id).all()


def create_paper(session, data):
    """Validate ``data`` and append a new paper to the ungrouped scope."""
    values = _validate(data)
    paper = Paper(**values)
    ordering.append_paper(session, paper)
    logger.info("Created paper %s %r", paper.id, paper.display_title,
                extra={"paper_id": paper.id})
    return paper


def update_paper(session, paper, data):
    """Apply the fields present in ``data`` to ``paper``."""
    values = _validate(data, partial=True)
    for attr, value in values.items():
        setattr(paper, attr, value)
    session.flush()
    return paper


def delete_paper(session, paper_id):
    ordering.delete_paper(session, paper_id)


def update_notes(session, paper, notes):
    """Merge section texts into the paper's notes.

    Unknown section keys are rejected; a None value clears the section.
    """
    if not isinstance(notes, dict):
        raise ValidationError("notes must be an object", details={"notes": "invalid"})
    unknown = sorted(k for k in notes if k not in NOTE_SECTIONS)
    if unknown:
        raise ValidationError(
            "Unknown note section", details={key: "unknown section" for key in unknown},
        )
    bad = sorted(k for k, v in notes.items() if v is not None and not isinstance(v, str))
    if bad:
        raise ValidationError(
            "Note text must be a string", details={key: "must be a string" for key in bad},
        )

    merged = paper.notes
    for key, text in notes.items():
        if text is None:
            merged.pop(key, None)
        else:
            merged[key] = text
    paper.notes_json = json.dumps(merged, ensure_ascii=False, sort_keys=True)
    session.flush()
    return paper


def apply_metadata(session, paper, metadata):
    """Fill empty paper fields and note sections from fetched metadata.

    Nothing the user already wrote is overwritten. Returns the list of
    fields that were filled.
    """
    filled = []

    if not (paper.title or "").strip() and (metadata.title or "").strip():
        paper.title = metadata.title.strip()
        filled.append("title")

    if not (paper.abstract_text or "").strip() and (metadata.abstract or "").strip():
        paper.abstract_text = metadata.abstract.strip()
        filled.append("abstract_text")

    if not paper.authors:
        authors = parse_author_string(metadata.authors)
        if authors:
            paper.authors_json = json.dumps(authors, ensure_ascii=False)
            filled.append("authors")

    notes = paper.notes
    sections_filled = False
    for field, section in METADATA_NOTE_SECTIONS:
        text = (getattr(metadata, field) or "").strip()
        if text and not str(notes.get(section) or "").strip():
            notes[section] = text
            filled.append(section)
            sections_filled = True
    if sections_filled:
        paper.notes_json = json.dumps(notes, ensure_ascii=False, sort_keys=True)

    session.flush()
    logger.info("Applied metadata to paper %s: %s", paper.id, ", ".join(filled) or "nothing",
                extra={"paper_id": paper.id})
    return filled
