"""Project I/O service — dump the store to a document and rebuild it from one.

Operations:
- serialize / export_json   store → versioned flat document (no side effects)
- import_document / import_json
                            document → store, destructive full replace
- reset_store               wipe every entity kind
- new_project               wipe + fresh workspace

Import algorithm (all inside one database transaction):
    0. validate the whole document          (MalformedDocumentError, nothing touched)
    1. wipe every entity kind
    2. pass 1: create entities with scalar fields only, flush, build id maps
    3. pass 2: relink parentID / groupID through the maps; dangling or
               depth-breaking links are dropped and reported as warnings
    4. guarantee exactly one workspace
    5. renumber every ordering scope (identity on dense input)
    6. commit once                          (CommitFailedError → rolled back)

Because nothing is committed before step 6, a failure at any point rolls the
store back to the project that was open before the import began.
"""
import json
import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError

from anning.core.exceptions import CommitFailedError, ValidationError
from anning.models.project import (
    DefinitionItem, Event, Paper, PaperGroup, TodoItem, Workspace, as_utc,
)
from anning.services.ordering import renumber_all
from anning.services.project_schema import (
    COLLECTIONS, FIELDS, FORMAT_VERSION, MODELS, ProjectDocument,
    parse_document, parse_json,
)

logger = logging.getLogger(__name__)

# Children before parents so foreign keys never dangle mid-wipe.
_WIPE_ORDER = (Paper, PaperGroup, Event, TodoItem, DefinitionItem, Workspace)

_LINK_FIELDS = ("parent_id", "group_id")


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    value = as_utc(value)
    return value.isoformat(timespec="microseconds") if value else None


# ═══════════════════════════════════════════════════════════════
# Serializer
# ═══════════════════════════════════════════════════════════════

def _encode(kind, value):
    if kind == "datetime":
        return _iso(value)
    return value


def _collection_records(session, collection):
    model = MODELS[collection]
    rows = session.query(model).order_by(model.created_at, model.id).all()
    fields = FIELDS[collection]
    return [
        {key: _encode(kind, getattr(row, attr)) for key, attr, kind, _ in fields}
        for row in rows
    ]


def serialize(session, exported_at=None):
    """Return the project document for the current store state.

    Every collection is ordered by creation (created_at, id). Foreign keys
    are written as the referenced entity's id. ``cached_file_path`` is not
    part of the field table and is therefore never written.
    """
    document = {
        "version": FORMAT_VERSION,
        "exportedAt": _iso(exported_at or _utcnow()),
    }
    for collection in COLLECTIONS:
        document[collection] = _collection_records(session, collection)
    return document


def export_json(session, indent=2, exported_at=None):
    """Serialize the store to JSON text with sorted keys."""
    return json.dumps(
        serialize(session, exported_at=exported_at),
        indent=indent,
        sort_keys=True,
        ensure_ascii=False,
    )


# ═══════════════════════════════════════════════════════════════
# Importer
# ═══════════════════════════════════════════════════════════════

class ImportReport:
    """Outcome of a successful import.

    Attributes:
        counts:        collection → number of entities created.
        warnings:      Non-fatal diagnostics (dropped links, extra workspaces).
        workspace_id:  Id of the workspace that is open after the import.
    """

    def __init__(self):
        self.counts = {name: 0 for name in COLLECTIONS}
        self.warnings = []
        self.workspace_id = None

    def warn(self, message, *args):
        text = message % args if args else message
        self.warnings.append(text)
        logger.warning("Import: %s", text)

    def to_dict(self):
        return {
            "counts": dict(self.counts),
            "warnings": list(self.warnings),
            "workspace_id": self.workspace_id,
        }


def wipe_store(session):
    """Delete every entity of every kind. Flushes pending work first; no commit."""
    session.flush()
    for model in _WIPE_ORDER:
        session.query(model).delete(synchronize_session=False)
    # bulk deletes bypass the identity map; drop stale instances so
    # re-imported rows can reuse their ids
    session.expunge_all()


def _build_entity(model, record, now):
    values = {k: v for k, v in record.items() if k not in _LINK_FIELDS}
    values["id"] = values.get("id") or str(uuid.uuid4())
    values["created_at"] = values.get("created_at") or now
    if "date" in values:
        values["date"] = values["date"] or now
    return model(**values)


def _select_workspace(records, report):
    if len(records) <= 1:
        return records
    earliest = min(
        range(len(records)),
        key=lambda i: (records[i]["created_at"] is None, records[i]["created_at"] or _utcnow(), i),
    )
    report.warn(
        "document holds %d workspaces; keeping %s",
        len(records), records[earliest]["id"] or "the earliest",
    )
    return [records[earliest]]


def _create_entities(session, document, now, report):
    """Pass 1 — scalar fields only. Returns collection → [(record, entity)]."""
    created = {}
    for collection in COLLECTIONS:
        records = document[collection]
        if collection == "workspaces":
            records = _select_workspace(records, report)
        model = MODELS[collection]
        pairs = []
        for position, record in enumerate(records):
            # records without createdAt keep their document order
            entity = _build_entity(model, record, now + timedelta(microseconds=position))
            session.add(entity)
            pairs.append((record, entity))
        created[collection] = pairs
        report.counts[collection] = len(pairs)
    session.flush()
    return created


def _relink_groups(pairs, report):
    groups = {entity.id: entity for _, entity in pairs}
    wanted = {}
    for record, entity in pairs:
        parent_id = record["parent_id"]
        if parent_id is None:
            continue
        if parent_id not in groups:
            report.warn("group %s: parent %s not in document, kept as root", entity.id, parent_id)
        elif parent_id == entity.id:
            report.warn("group %s: refers to itself as parent, kept as root", entity.id)
        else:
            wanted[entity.id] = parent_id

    roots = {group_id for group_id in groups if group_id not in wanted}
    for child_id, parent_id in wanted.items():
        if parent_id in roots:
            groups[child_id].parent_id = parent_id
        else:
            report.warn(
                "group %s: parent %s is itself a subgroup, kept as root", child_id, parent_id,
            )
    return groups


def _relink_papers(pairs, groups, report):
    for record, paper in pairs:
        group_id = record["group_id"]
        if group_id is None:
            continue
        if group_id in groups:
            paper.group_id = group_id
        else:
            report.warn("paper %s: group %s not in document, moved to ungrouped", paper.id, group_id)


def import_document(session, document):
    """Replace the whole store with the contents of ``document``.

    Args:
        session: SQLAlchemy session acting as the entity store.
        document: A ``ProjectDocument`` or the decoded JSON object.

    Returns:
        ImportReport.

    Raises:
        MalformedDocumentError: validation failed; the store is untouched.
        CommitFailedError: the rebuild could not be persisted; the
            transaction was rolled back.
    """
    if not isinstance(document, ProjectDocument):
        document = parse_document(document)

    report = ImportReport()
    now = _utcnow()
    try:
        wipe_store(session)
        created = _create_entities(session, document, now, report)

        groups = _relink_groups(created["paperGroups"], report)
        _relink_papers(created["papers"], groups, report)
        session.flush()

        if created["workspaces"]:
            report.workspace_id = created["workspaces"][0][1].id
        else:
            workspace = Workspace(created_at=now, project_title="", research_objective="")
            session.add(workspace)
            session.flush()
            report.workspace_id = workspace.id

        renumber_all(session)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Project import failed while persisting")
        raise CommitFailedError(
            f"{CommitFailedError.user_message} ({exc.__class__.__name__})"
        ) from exc
    except Exception:
        session.rollback()
        raise

    logger.info("Imported project: %s (%d warning(s))", report.counts, len(report.warnings))
    return report


def import_json(session, text):
    """Validate JSON text and import it. See ``import_document``."""
    return import_document(session, parse_json(text))


# ═══════════════════════════════════════════════════════════════
# Project lifecycle
# ═══════════════════════════════════════════════════════════════

def _commit(session, action):
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("%s failed while persisting", action)
        raise CommitFailedError(
            f"{CommitFailedError.user_message} ({exc.__class__.__name__})"
        ) from exc


def reset_store(session):
    """Wipe every entity and commit."""
    wipe_store(session)
    _commit(session, "Project reset")
    logger.info("Project store reset")


def new_project(session, project_title, research_objective):
    """Start an empty project with a fresh workspace.

    Both fields are required (trimmed). Validation happens before the wipe.
    """
    title = (project_title or "").strip()
    objective = (research_objective or "").strip()
    missing = {}
    if not title:
        missing["project_title"] = "required"
    if not objective:
        missing["research_objective"] = "required"
    if missing:
        raise ValidationError(
            "Both project title and research objective are required", details=missing,
        )

    wipe_store(session)
    workspace = Workspace(project_title=title, research_objective=objective)
    session.add(workspace)
    _commit(session, "New project")
    logger.info("Created new project %r (workspace %s)", title, workspace.id)
    return workspace
