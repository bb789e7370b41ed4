"""
Project blueprint — workspace header and whole-project lifecycle.

Endpoints:
    GET  /api/v1/project/workspace   — project title + research objective
    PUT  /api/v1/project/workspace   — update them
    GET  /api/v1/project/export      — download the project document
    POST /api/v1/project/import      — replace the store with the posted document
    POST /api/v1/project/new         — wipe and start a fresh project
    POST /api/v1/project/reset       — wipe everything
    POST /api/v1/project/save        — write the project file  {"path"}
    POST /api/v1/project/open        — read a project file     {"path"}

Import, new, reset and open own their commit (one transaction each); the
other endpoints commit through db_commit_or_error().
"""

import logging

from flask import Blueprint, Response, current_app, jsonify, request

from anning.blueprints import json_body, register_error_handlers
from anning.core.exceptions import ValidationError
from anning.models import db
from anning.services import project_file, project_io, workspace_service
from anning.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

project_bp = Blueprint("project_bp", __name__, url_prefix="/api/v1/project")
register_error_handlers(project_bp)


def _path_from(data):
    path = data.get("path")
    if not isinstance(path, str) or not path.strip():
        raise ValidationError("path is required", details={"path": "required"})
    return path.strip()


@project_bp.route("/workspace", methods=["GET"])
def get_workspace():
    workspace = workspace_service.get_or_create_workspace(db.session)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(workspace.to_dict()), 200


@project_bp.route("/workspace", methods=["PUT"])
def update_workspace():
    workspace = workspace_service.update_workspace(db.session, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(workspace.to_dict()), 200


@project_bp.route("/export", methods=["GET"])
def export_project():
    """Return the project document as a JSON attachment."""
    text = project_io.export_json(db.session, indent=current_app.config["PROJECT_FILE_INDENT"])
    return Response(
        text,
        mimetype="application/json",
        headers={"Content-Disposition": 'attachment; filename="project.json"'},
    )


@project_bp.route("/import", methods=["POST"])
def import_project():
    """Replace the whole store with the posted document.

    Returns: {"counts", "warnings", "workspace_id"}; warnings list dropped links.
    """
    report = project_io.import_json(db.session, request.get_data())
    return jsonify(report.to_dict()), 200


@project_bp.route("/new", methods=["POST"])
def new_project():
    data = json_body()
    workspace = project_io.new_project(
        db.session, data.get("project_title"), data.get("research_objective"),
    )
    return jsonify(workspace.to_dict()), 201


@project_bp.route("/reset", methods=["POST"])
def reset_project():
    project_io.reset_store(db.session)
    return jsonify({"status": "reset"}), 200


@project_bp.route("/save", methods=["POST"])
def save_project():
    path = _path_from(json_body())
    written = project_file.save_project(
        db.session, path, indent=current_app.config["PROJECT_FILE_INDENT"],
    )
    return jsonify({"path": written}), 200


@project_bp.route("/open", methods=["POST"])
def open_project():
    path = _path_from(json_body())
    report = project_file.load_project(db.session, path)
    return jsonify(report.to_dict()), 200
