"""Notebook service — timeline events, todos and glossary definitions.

These are flat records with no ordering scope; lists are sorted on read.

Transaction policy: flush() only; the caller commits.
"""
import logging
from urllib.parse import urlparse

from anning.core.exceptions import NotFoundError, ValidationError
from anning.models.project import (
    DEFAULT_EVENT_TYPE, DEFAULT_TERM, DEFAULT_TODO_PRIORITY, EVENT_TYPES,
    TODO_PRIORITIES, DefinitionItem, Event, TodoItem,
)
from anning.utils.helpers import parse_datetime

logger = logging.getLogger(__name__)


def _get(session, model, item_id):
    item = session.get(model, item_id) if item_id else None
    if item is None:
        raise NotFoundError(model.__name__, item_id)
    return item


def _text(data, field, errors):
    value = data.get(field)
    if value is None:
        return ""
    if not isinstance(value, str):
        errors[field] = "must be a string"
        return ""
    return value.strip()


def _date(data, errors):
    try:
        return parse_datetime(data.get("date"))
    except ValueError:
        errors["date"] = "must be an ISO-8601 date or datetime"
        return None


def _is_http_url(value):
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme.lower() in ("http", "https") and bool(parsed.netloc)


def _apply(session, item, values):
    for attr, value in values.items():
        setattr(item, attr, value)
    session.flush()
    return item


# ═══════════════════════════════════════════════════════════════
# Events
# ═══════════════════════════════════════════════════════════════

def _validate_event(data, partial):
    errors = {}
    values = {}

    if not partial or "short_title" in data:
        values["short_title"] = _text(data, "short_title", errors)
        if "short_title" not in errors and not values["short_title"]:
            errors["short_title"] = "required"

    if not partial or "summary_text" in data:
        values["summary_text"] = _text(data, "summary_text", errors)
        if "summary_text" not in errors and not values["summary_text"]:
            errors["summary_text"] = "required"

    if not partial or "url" in data:
        url = _text(data, "url", errors)
        if url and not _is_http_url(url):
            errors["url"] = "must be an http(s) URL or empty"
        values["url"] = url or None

    if not partial or "event_type" in data:
        event_type = _text(data, "event_type", errors) or DEFAULT_EVENT_TYPE
        if event_type not in EVENT_TYPES:
            errors["event_type"] = f"must be one of {', '.join(EVENT_TYPES)}"
        values["event_type"] = event_type

    if "date" in data:
        date = _date(data, errors)
        if date is not None:
            values["date"] = date

    if errors:
        raise ValidationError("Invalid event", details=errors)
    return values


def list_events(session):
    """Events in timeline order (date, then creation)."""
    return session.query(Event).order_by(Event.date, Event.created_at, Event.id).all()


def get_event(session, event_id):
    return _get(session, Event, event_id)


def create_event(session, data):
    event = Event(**_validate_event(data, partial=False))
    session.add(event)
    session.flush()
    logger.info("Created event %s %r", event.id, event.short_title)
    return event


def update_event(session, event, data):
    return _apply(session, event, _validate_event(data, partial=True))


def delete_event(session, event_id):
    session.delete(_get(session, Event, event_id))
    session.flush()


# ═══════════════════════════════════════════════════════════════
# Todos
# ═══════════════════════════════════════════════════════════════

def _validate_todo(data, partial):
    errors = {}
    values = {}

    if not partial or "todo_text" in data:
        values["todo_text"] = _text(data, "todo_text", errors)

    if not partial or "priority" in data:
        priority = _text(data, "priority", errors).lower() or DEFAULT_TODO_PRIORITY
        if priority not in TODO_PRIORITIES:
            errors["priority"] = f"must be one of {', '.join(TODO_PRIORITIES)}"
        values["priority"] = priority

    if "is_done" in data:
        if not isinstance(data["is_done"], bool):
            errors["is_done"] = "must be a boolean"
        else:
            values["is_done"] = data["is_done"]

    if "date" in data:
        date = _date(data, errors)
        if date is not None:
            values["date"] = date

    if errors:
        raise ValidationError("Invalid todo", details=errors)
    return values


def list_todos(session):
    """Open todos first, then by priority (p1 first) and date."""
    return (
        session.query(TodoItem)
        .order_by(TodoItem.is_done, TodoItem.priority, TodoItem.date, TodoItem.id)
        .all()
    )


def get_todo(session, todo_id):
    return _get(session, TodoItem, todo_id)


def create_todo(session, data):
    todo = TodoItem(**_validate_todo(data, partial=False))
    session.add(todo)
    session.flush()
    return todo


def update_todo(session, todo, data):
    return _apply(session, todo, _validate_todo(data, partial=True))


def toggle_todo(session, todo_id):
    todo = _get(session, TodoItem, todo_id)
    todo.is_done = not todo.is_done
    session.flush()
    return todo


def delete_todo(session, todo_id):
    session.delete(_get(session, TodoItem, todo_id))
    session.flush()


# ═══════════════════════════════════════════════════════════════
# Definitions
# ═══════════════════════════════════════════════════════════════

def _validate_definition(data, partial):
    errors = {}
    values = {}

    if not partial or "term" in data:
        values["term"] = _text(data, "term", errors) or DEFAULT_TERM

    if not partial or "definition_text" in data:
        values["definition_text"] = _text(data, "definition_text", errors)

    if errors:
        raise ValidationError("Invalid definition", details=errors)
    return values


def list_definitions(session):
    return (
        session.query(DefinitionItem)
        .order_by(DefinitionItem.created_at, DefinitionItem.id)
        .all()
    )


def get_definition(session, definition_id):
    return _get(session, DefinitionItem, definition_id)


def create_definition(session, data):
    item = DefinitionItem(**_validate_definition(data, partial=False))
    session.add(item)
    session.flush()
    return item


def update_definition(session, item, data):
    return _apply(session, item, _validate_definition(data, partial=True))


def delete_definition(session, definition_id):
    session.delete(_get(session, DefinitionItem, definition_id))
    session.flush()
