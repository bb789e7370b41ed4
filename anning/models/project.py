"""
anning — Project store domain models.

Models (6 tables):
    1. Workspace       — singleton project header (title + research objective)
    2. PaperGroup      — two-level folder tree (root groups, one level of subgroups)
    3. Paper           — research paper with authors, notes, and sidebar position
    4. Event           — dated timeline entry
    5. TodoItem        — prioritised todo
    6. DefinitionItem  — glossary term

Relationships are plain foreign-key columns (``PaperGroup.parent_id``,
``Paper.group_id``). Children of a group and papers in a group are always
resolved with a filtered query, never through a stored back-pointer
collection, so a reparent touches exactly one column per row.

Foreign keys use ``ON DELETE SET NULL``: the database never cascade-deletes
content. Group deletion reparents explicitly in ``services.ordering``.
"""

import json
import uuid
from datetime import datetime, timezone

from anning.models import db


# ── Constants ────────────────────────────────────────────────────────────────

PAPER_TYPES = ("survey paper", "empirical work", "theoretical proof")
DEFAULT_PAPER_TYPE = "empirical work"

EVENT_TYPES = ("supporting", "unsupporting", "landmark", "informative", "improvement")
DEFAULT_EVENT_TYPE = "informative"

TODO_PRIORITIES = ("p1", "p2", "p3")
DEFAULT_TODO_PRIORITY = "p3"

NOTE_SECTIONS = (
    "history",
    "motivation",
    "experimentSetup",
    "experimentMethod",
    "results",
    "conclusion",
)

DEFAULT_GROUP_NAME = "New Group"
DEFAULT_SUBGROUP_NAME = "New Subgroup"
DEFAULT_TERM = "new term"


# ── Helpers ──────────────────────────────────────────────────────────────────

def _uuid():
    """Generate a new UUID4 string for primary keys."""
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def as_utc(value):
    """Return ``value`` as an aware UTC datetime.

    SQLite drops tzinfo on ``DateTime(timezone=True)`` columns; every
    timestamp this app writes is UTC, so naive values are re-tagged.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _iso(value):
    value = as_utc(value)
    return value.isoformat() if value else None


# ═════════════════════════════════════════════════════════════════════════════
# 1. Workspace
# ═════════════════════════════════════════════════════════════════════════════

class Workspace(db.Model):
    """Project header. Exactly one row exists while a project is open."""

    __tablename__ = "workspaces"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    project_title = db.Column(db.String(300), nullable=False, default="")
    research_objective = db.Column(db.Text, nullable=False, default="")

    def to_dict(self):
        return {
            "id": self.id,
            "created_at": _iso(self.created_at),
            "project_title": self.project_title,
            "research_objective": self.research_objective,
        }

    def __repr__(self):
        return f"<Workspace {self.id}: {self.project_title!r}>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. PaperGroup — two-level tree
# ═════════════════════════════════════════════════════════════════════════════

class PaperGroup(db.Model):
    """
    Sidebar folder. Root groups have ``parent_id = NULL``; subgroups point at
    a root group. A subgroup never has children of its own (depth <= 2).

    ``order_index`` is dense (0..n-1) among siblings sharing ``parent_id``.
    """

    __tablename__ = "paper_groups"
    __table_args__ = (
        db.Index("idx_pg_parent_order", "parent_id", "order_index"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    name = db.Column(db.String(200), nullable=False, default=DEFAULT_GROUP_NAME)
    order_index = db.Column(db.Integer, nullable=False, default=0)
    is_collapsed = db.Column(db.Boolean, nullable=False, default=False)
    parent_id = db.Column(
        db.String(36),
        db.ForeignKey("paper_groups.id", ondelete="SET NULL"),
        nullable=True,
        comment="NULL for root groups",
    )

    @property
    def is_root(self):
        return self.parent_id is None

    def to_dict(self):
        return {
            "id": self.id,
            "created_at": _iso(self.created_at),
            "name": self.name,
            "order_index": self.order_index,
            "is_collapsed": self.is_collapsed,
            "parent_id": self.parent_id,
        }

    def __repr__(self):
        return f"<PaperGroup {self.id}: {self.name!r} order={self.order_index}>"


# ═════════════════════════════════════════════════════════════════════════════
# 3. Paper
# ═════════════════════════════════════════════════════════════════════════════

class Paper(db.Model):
    """
    Research paper.

    ``authors_json`` holds a JSON list of ``{"firstName", "lastName"}``
    objects in display order; ``notes_json`` a JSON object of note section
    key → text. Both are kept as text so they round-trip byte for byte.

    ``sort_index`` is dense within the scope of ``group_id`` (NULL =
    ungrouped). ``cached_file_path`` is machine-local and never exported.
    """

    __tablename__ = "papers"
    __table_args__ = (
        db.Index("idx_paper_group_sort", "group_id", "sort_index"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    title = db.Column(db.Text, nullable=False, default="")
    short_title = db.Column(db.String(200), nullable=False, default="")
    abstract_text = db.Column(db.Text, nullable=False, default="")
    source_url = db.Column(db.String(1000), nullable=False, default="")
    authors_json = db.Column(db.Text, nullable=False, default="[]")
    notes_json = db.Column(db.Text, nullable=False, default="{}")
    paper_type = db.Column(
        db.String(30), nullable=False, default=DEFAULT_PAPER_TYPE,
        comment="survey paper | empirical work | theoretical proof",
    )
    sort_index = db.Column(db.Integer, nullable=False, default=0)
    group_id = db.Column(
        db.String(36),
        db.ForeignKey("paper_groups.id", ondelete="SET NULL"),
        nullable=True,
        comment="NULL = ungrouped",
    )
    cached_file_path = db.Column(db.String(1000), nullable=True)

    @property
    def authors(self):
        try:
            value = json.loads(self.authors_json or "[]")
        except ValueError:
            return []
        return value if isinstance(value, list) else []

    @property
    def notes(self):
        try:
            value = json.loads(self.notes_json or "{}")
        except ValueError:
            return {}
        return value if isinstance(value, dict) else {}

    @property
    def display_title(self):
        short = (self.short_title or "").strip()
        return short or (self.title or "Untitled")

    def to_dict(self):
        return {
            "id": self.id,
            "created_at": _iso(self.created_at),
            "title": self.title,
            "short_title": self.short_title,
            "display_title": self.display_title,
            "abstract_text": self.abstract_text,
            "source_url": self.source_url,
            "authors": self.authors,
            "notes": self.notes,
            "paper_type": self.paper_type,
            "sort_index": self.sort_index,
            "group_id": self.group_id,
            "cached_file_path": self.cached_file_path,
        }

    def __repr__(self):
        return f"<Paper {self.id}: {self.display_title!r} sort={self.sort_index}>"


# ═════════════════════════════════════════════════════════════════════════════
# 4-6. Flat notebook records
# ═════════════════════════════════════════════════════════════════════════════

class Event(db.Model):
    """Dated timeline entry."""

    __tablename__ = "events"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    date = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    short_title = db.Column(db.String(300), nullable=False, default="")
    summary_text = db.Column(db.Text, nullable=False, default="")
    event_type = db.Column(
        db.String(20), nullable=False, default=DEFAULT_EVENT_TYPE,
        comment="supporting | unsupporting | landmark | informative | improvement",
    )
    url = db.Column(db.String(1000), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "created_at": _iso(self.created_at),
            "date": _iso(self.date),
            "short_title": self.short_title,
            "summary_text": self.summary_text,
            "event_type": self.event_type,
            "url": self.url,
        }


class TodoItem(db.Model):
    """Prioritised todo (p1 highest)."""

    __tablename__ = "todo_items"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    date = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    priority = db.Column(db.String(5), nullable=False, default=DEFAULT_TODO_PRIORITY)
    todo_text = db.Column(db.Text, nullable=False, default="")
    is_done = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self):
        return {
            "id": self.id,
            "created_at": _iso(self.created_at),
            "date": _iso(self.date),
            "priority": self.priority,
            "todo_text": self.todo_text,
            "is_done": self.is_done,
        }


class DefinitionItem(db.Model):
    """Glossary term."""

    __tablename__ = "definition_items"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    term = db.Column(db.String(300), nullable=False, default=DEFAULT_TERM)
    definition_text = db.Column(db.Text, nullable=False, default="")

    def to_dict(self):
        return {
            "id": self.id,
            "created_at": _iso(self.created_at),
            "term": self.term,
            "definition_text": self.definition_text,
        }
