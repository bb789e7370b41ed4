"""
Notebook blueprint — events timeline, todos and definitions.

Endpoints:
    GET/POST        /api/v1/events
    GET/PUT/DELETE  /api/v1/events/<id>
    GET/POST        /api/v1/todos
    GET/PUT/DELETE  /api/v1/todos/<id>
    POST            /api/v1/todos/<id>/toggle
    GET/POST        /api/v1/definitions
    GET/PUT/DELETE  /api/v1/definitions/<id>
"""

import logging

from flask import Blueprint, jsonify

from anning.blueprints import json_body, register_error_handlers
from anning.models import db
from anning.services import notebook_service as nb
from anning.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

notebook_bp = Blueprint("notebook_bp", __name__, url_prefix="/api/v1")
register_error_handlers(notebook_bp)


def _committed(item, status=200):
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict()), status


def _deleted(item_id):
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": item_id}), 200


# ═════════════════════════════════════════════════════════════════════════
# Events
# ═════════════════════════════════════════════════════════════════════════


@notebook_bp.route("/events", methods=["GET"])
def list_events():
    events = nb.list_events(db.session)
    return jsonify({"items": [e.to_dict() for e in events], "total": len(events)}), 200


@notebook_bp.route("/events", methods=["POST"])
def create_event():
    """Body: {short_title, summary_text, date?, event_type?, url?}"""
    return _committed(nb.create_event(db.session, json_body()), 201)


@notebook_bp.route("/events/<event_id>", methods=["GET"])
def get_event(event_id):
    return jsonify(nb.get_event(db.session, event_id).to_dict()), 200


@notebook_bp.route("/events/<event_id>", methods=["PUT"])
def update_event(event_id):
    event = nb.get_event(db.session, event_id)
    return _committed(nb.update_event(db.session, event, json_body()))


@notebook_bp.route("/events/<event_id>", methods=["DELETE"])
def delete_event(event_id):
    nb.delete_event(db.session, event_id)
    return _deleted(event_id)


# ═════════════════════════════════════════════════════════════════════════
# Todos
# ═════════════════════════════════════════════════════════════════════════


@notebook_bp.route("/todos", methods=["GET"])
def list_todos():
    todos = nb.list_todos(db.session)
    return jsonify({"items": [t.to_dict() for t in todos], "total": len(todos)}), 200


@notebook_bp.route("/todos", methods=["POST"])
def create_todo():
    """Body: {todo_text?, priority?, date?, is_done?}"""
    return _committed(nb.create_todo(db.session, json_body()), 201)


@notebook_bp.route("/todos/<todo_id>", methods=["GET"])
def get_todo(todo_id):
    return jsonify(nb.get_todo(db.session, todo_id).to_dict()), 200


@notebook_bp.route("/todos/<todo_id>", methods=["PUT"])
def update_todo(todo_id):
    todo = nb.get_todo(db.session, todo_id)
    return _committed(nb.update_todo(db.session, todo, json_body()))


@notebook_bp.route("/todos/<todo_id>/toggle", methods=["POST"])
def toggle_todo(todo_id):
    return _committed(nb.toggle_todo(db.session, todo_id))


@notebook_bp.route("/todos/<todo_id>", methods=["DELETE"])
def delete_todo(todo_id):
    nb.delete_todo(db.session, todo_id)
    return _deleted(todo_id)


# ═════════════════════════════════════════════════════════════════════════
# Definitions
# ═════════════════════════════════════════════════════════════════════════


@notebook_bp.route("/definitions", methods=["GET"])
def list_definitions():
    items = nb.list_definitions(db.session)
    return jsonify({"items": [d.to_dict() for d in items], "total": len(items)}), 200


@notebook_bp.route("/definitions", methods=["POST"])
def create_definition():
    """Body: {term?, definition_text?}"""
    return _committed(nb.create_definition(db.session, json_body()), 201)


@notebook_bp.route("/definitions/<definition_id>", methods=["GET"])
def get_definition(definition_id):
    return jsonify(nb.get_definition(db.session, definition_id).to_dict()), 200


@notebook_bp.route("/definitions/<definition_id>", methods=["PUT"])
def update_definition(definition_id):
    item = nb.get_definition(db.session, definition_id)
    return _committed(nb.update_definition(db.session, item, json_body()))


@notebook_bp.route("/definitions/<definition_id>", methods=["DELETE"])
def delete_definition(definition_id):
    nb.delete_definition(db.session, definition_id)
    return _deleted(definition_id)
