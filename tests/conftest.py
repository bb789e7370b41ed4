"""
Shared pytest fixtures for the anning test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - store: the SQLAlchemy session services receive as their store handle
    - pdf_dir: per-test PDF cache directory
    - make_paper / make_group: small factories
"""

import pytest

from anning import create_app
from anning.models import db as _db
from anning.models.project import Paper
from anning.services import ordering

ARXIV_URL = "https://arxiv.org/pdf/1706.03762.pdf"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app(tmp_path_factory):
    """Create the Flask application once per test session."""
    application = create_app("testing")
    application.config["ANNING_PDF_CACHE_DIR"] = str(tmp_path_factory.mktemp("pdfs"))
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()
    app.extensions.pop("paper_details_gateway", None)


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def store():
    """The entity store handle passed to every service function."""
    return _db.session


@pytest.fixture()
def pdf_dir(app, tmp_path):
    """Point the PDF cache at an empty per-test directory."""
    previous = app.config["ANNING_PDF_CACHE_DIR"]
    app.config["ANNING_PDF_CACHE_DIR"] = str(tmp_path / "pdfs")
    yield tmp_path / "pdfs"
    app.config["ANNING_PDF_CACHE_DIR"] = previous


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def make_paper(store):
    """Factory: append a paper to ``group_id``'s scope (default ungrouped)."""

    def _make(title="Attention Is All You Need", group_id=None, **fields):
        fields.setdefault("source_url", ARXIV_URL)
        paper = Paper(title=title, **fields)
        ordering.append_paper(store, paper, group_id)
        return paper

    return _make


@pytest.fixture()
def make_group(store):
    """Factory: create a root group, or a subgroup under ``parent_id``."""

    def _make(name="Group", parent_id=None):
        if parent_id is None:
            return ordering.create_root_group(store, name)
        return ordering.create_subgroup(store, parent_id, name)

    return _make
