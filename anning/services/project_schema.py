"""Project file schema — field tables and validate-before-mutate parsing.

The project file is one JSON object:

    {
      "version": 1,
      "exportedAt": "2026-01-01T09:30:00.000000+00:00",
      "workspaces":  [...],
      "paperGroups": [...],
      "papers":      [...],
      "events":      [...],
      "todos":       [...],
      "definitions": [...]
    }

Each collection holds flat records. Relationships are foreign-key fields
(``parentID`` on groups, ``groupID`` on papers) carrying the referenced
record's UUID, never nested objects.

On read every field is optional: a missing or null field takes the
type-specific default, so older files keep loading. On write every field is
emitted. ``FIELDS`` below is the single table both directions use.

``parse_document`` checks the entire document and returns normalised records;
it raises ``MalformedDocumentError`` (with a path such as
``papers[2].sortIndex``) before the caller has touched the store.
"""
import json
import uuid

from anning.core.exceptions import MalformedDocumentError
from anning.models.project import (
    DEFAULT_EVENT_TYPE, DEFAULT_GROUP_NAME, DEFAULT_PAPER_TYPE, DEFAULT_TERM,
    DEFAULT_TODO_PRIORITY, EVENT_TYPES, PAPER_TYPES, TODO_PRIORITIES,
    DefinitionItem, Event, Paper, PaperGroup, TodoItem, Workspace,
)
from anning.utils.helpers import parse_datetime

FORMAT_VERSION = 1

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1


# ── Field tables ─────────────────────────────────────────────────────────────
# (json key, model attribute, kind, default)
#
# kinds:
#   id        UUID string; None → minted at import
#   ref       optional UUID string foreign key
#   datetime  ISO-8601; None default → "now" at import
#   str       string
#   opt_str   string or null
#   int32     integer within Int32
#   bool      boolean
#   json_list / json_object   JSON text, or the already-decoded value

_COMMON = (
    ("id", "id", "id", None),
    ("createdAt", "created_at", "datetime", None),
)

FIELDS = {
    "workspaces": _COMMON + (
        ("projectTitle", "project_title", "str", ""),
        ("researchObjective", "research_objective", "str", ""),
    ),
    "paperGroups": _COMMON + (
        ("name", "name", "str", DEFAULT_GROUP_NAME),
        ("orderIndex", "order_index", "int32", 0),
        ("isCollapsed", "is_collapsed", "bool", False),
        ("parentID", "parent_id", "ref", None),
    ),
    "papers": _COMMON + (
        ("title", "title", "str", ""),
        ("shortTitle", "short_title", "str", ""),
        ("abstractText", "abstract_text", "str", ""),
        ("sourceURL", "source_url", "str", ""),
        ("authorsJSON", "authors_json", "json_list", "[]"),
        ("notesJSON", "notes_json", "json_object", "{}"),
        ("paperType", "paper_type", "str", DEFAULT_PAPER_TYPE),
        ("sortIndex", "sort_index", "int32", 0),
        ("groupID", "group_id", "ref", None),
    ),
    "events": _COMMON + (
        ("date", "date", "datetime", None),
        ("shortTitle", "short_title", "str", ""),
        ("summaryText", "summary_text", "str", ""),
        ("eventType", "event_type", "str", DEFAULT_EVENT_TYPE),
        ("url", "url", "opt_str", None),
    ),
    "todos": _COMMON + (
        ("date", "date", "datetime", None),
        ("priority", "priority", "str", DEFAULT_TODO_PRIORITY),
        ("todoText", "todo_text", "str", ""),
        ("isDone", "is_done", "bool", False),
    ),
    "definitions": _COMMON + (
        ("term", "term", "str", DEFAULT_TERM),
        ("definitionText", "definition_text", "str", ""),
    ),
}

MODELS = {
    "workspaces": Workspace,
    "paperGroups": PaperGroup,
    "papers": Paper,
    "events": Event,
    "todos": TodoItem,
    "definitions": DefinitionItem,
}

COLLECTIONS = tuple(FIELDS)

# Older files named the paper URL after its only supported source.
LEGACY_KEYS = {
    "papers": {"sourceURL": "arxivPDFURL"},
}


class ProjectDocument:
    """Validated project file contents.

    Attributes:
        version:      Format version of the source file.
        exported_at:  Aware datetime, or None if the file had none.
        records:      collection name → list of dicts keyed by model attribute.
                      ``id`` / ``created_at`` / ``date`` may be None (filled
                      at import).
    """

    def __init__(self, version, exported_at, records):
        self.version = version
        self.exported_at = exported_at
        self.records = records

    def __getitem__(self, collection):
        return self.records[collection]

    def counts(self):
        return {name: len(rows) for name, rows in self.records.items()}


# ═══════════════════════════════════════════════════════════════
# Value coercion
# ═══════════════════════════════════════════════════════════════

def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def canonical_uuid(value, path):
    """Return the lowercase canonical form of a UUID string."""
    if not isinstance(value, str):
        raise MalformedDocumentError("expected a UUID string", path)
    try:
        return str(uuid.UUID(value))
    except ValueError as exc:
        raise MalformedDocumentError(f"invalid UUID {value!r}", path) from exc


def _coerce(kind, value, default, path):
    if value is None:
        return default

    if kind in ("id", "ref"):
        return canonical_uuid(value, path)

    if kind == "datetime":
        if not isinstance(value, str):
            raise MalformedDocumentError("expected an ISO-8601 string", path)
        try:
            return parse_datetime(value)
        except ValueError as exc:
            raise MalformedDocumentError(str(exc), path) from exc

    if kind in ("str", "opt_str"):
        if not isinstance(value, str):
            raise MalformedDocumentError(f"expected a string, got {type(value).__name__}", path)
        return value

    if kind == "int32":
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if not _is_int(value):
            raise MalformedDocumentError(f"expected an integer, got {type(value).__name__}", path)
        if not INT32_MIN <= value <= INT32_MAX:
            raise MalformedDocumentError(f"integer {value} outside Int32 range", path)
        return value

    if kind == "bool":
        if not isinstance(value, bool):
            raise MalformedDocumentError(f"expected a boolean, got {type(value).__name__}", path)
        return value

    if kind in ("json_list", "json_object"):
        expected = list if kind == "json_list" else dict
        if isinstance(value, str):
            return value
        if isinstance(value, expected):
            return json.dumps(value, ensure_ascii=False)
        raise MalformedDocumentError(
            f"expected JSON text or a {expected.__name__}, got {type(value).__name__}", path,
        )

    raise AssertionError(f"unknown field kind {kind!r}")


def _normalise_choice(value, choices, default, lower=False):
    cleaned = (value or "").strip()
    if lower:
        cleaned = cleaned.lower()
    return cleaned if cleaned in choices else default


def _post_process(collection, record):
    """Map free-form enum strings onto known values, like the editors do."""
    if collection == "papers":
        record["paper_type"] = _normalise_choice(
            record["paper_type"], PAPER_TYPES, DEFAULT_PAPER_TYPE,
        )
    elif collection == "events":
        record["event_type"] = _normalise_choice(
            record["event_type"], EVENT_TYPES, DEFAULT_EVENT_TYPE,
        )
    elif collection == "todos":
        record["priority"] = _normalise_choice(
            record["priority"], TODO_PRIORITIES, DEFAULT_TODO_PRIORITY, lower=True,
        )


# ═══════════════════════════════════════════════════════════════
# Document parsing
# ═══════════════════════════════════════════════════════════════

def _parse_record(collection, raw, path):
    if not isinstance(raw, dict):
        raise MalformedDocumentError(
            f"expected an object, got {type(raw).__name__}", path,
        )
    legacy = LEGACY_KEYS.get(collection, {})
    record = {}
    for key, attr, kind, default in FIELDS[collection]:
        value = raw.get(key)
        if value is None and key in legacy:
            key = legacy[key]
            value = raw.get(key)
        record[attr] = _coerce(kind, value, default, f"{path}.{key}")
    _post_process(collection, record)
    return record


def parse_document(raw):
    """Validate a decoded JSON document and return a ``ProjectDocument``.

    Raises:
        MalformedDocumentError: on the first schema/type problem found.
    """
    if not isinstance(raw, dict):
        raise MalformedDocumentError(
            f"project file must be a JSON object, got {type(raw).__name__}",
        )

    version = raw.get("version")
    if version is None:
        version = FORMAT_VERSION
    if not _is_int(version):
        raise MalformedDocumentError("expected an integer", "version")
    if version < 1 or version > FORMAT_VERSION:
        raise MalformedDocumentError(
            f"unsupported project file version {version} (max {FORMAT_VERSION})", "version",
        )

    exported_at = _coerce("datetime", raw.get("exportedAt"), None, "exportedAt")

    records = {}
    for collection in COLLECTIONS:
        rows = raw.get(collection)
        if rows is None:
            rows = []
        if not isinstance(rows, list):
            raise MalformedDocumentError(
                f"expected an array, got {type(rows).__name__}", collection,
            )

        parsed = []
        seen = set()
        for index, row in enumerate(rows):
            path = f"{collection}[{index}]"
            record = _parse_record(collection, row, path)
            if record["id"] is not None:
                if record["id"] in seen:
                    raise MalformedDocumentError(
                        f"duplicate id {record['id']}", f"{path}.id",
                    )
                seen.add(record["id"])
            parsed.append(record)
        records[collection] = parsed

    return ProjectDocument(version, exported_at, records)


def parse_json(text):
    """Decode JSON text (str or bytes) and validate it."""
    try:
        raw = json.loads(text)
    except (ValueError, TypeError) as exc:
        raise MalformedDocumentError(f"invalid JSON: {exc}") from exc
    return parse_document(raw)
