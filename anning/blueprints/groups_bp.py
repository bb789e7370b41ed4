"""
Groups blueprint — the sidebar folder tree.

Endpoints:
    GET    /api/v1/groups/tree          — roots → subgroups → papers, plus ungrouped
    POST   /api/v1/groups               — create  {"name"?, "parent_id"?}
    PUT    /api/v1/groups/<id>          — rename  {"name"}
    POST   /api/v1/groups/<id>/toggle   — flip collapsed, or set {"collapsed": bool}
    DELETE /api/v1/groups/<id>          — delete, reparenting papers and subgroups

All ordering rules live in services.ordering; this module only commits.
"""

import logging

from flask import Blueprint, jsonify

from anning.blueprints import json_body, register_error_handlers
from anning.core.exceptions import ValidationError
from anning.models import db
from anning.models.project import PaperGroup
from anning.services import ordering
from anning.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

groups_bp = Blueprint("groups_bp", __name__, url_prefix="/api/v1/groups")
register_error_handlers(groups_bp)


@groups_bp.route("/tree", methods=["GET"])
def get_tree():
    return jsonify(ordering.build_tree(db.session)), 200


@groups_bp.route("", methods=["POST"])
def create_group():
    """Create a root group, or a subgroup when parent_id is given.

    Errors: 404 unknown parent, 422 parent is a subgroup.
    """
    data = json_body()
    name = data.get("name")
    if name is not None and not isinstance(name, str):
        raise ValidationError("name must be a string", details={"name": "invalid"})

    parent_id = data.get("parent_id")
    if parent_id:
        group_id = ordering.create_subgroup(db.session, parent_id, name)
    else:
        group_id = ordering.create_root_group(db.session, name)

    err = db_commit_or_error()
    if err:
        return err
    return jsonify(db.session.get(PaperGroup, group_id).to_dict()), 201


@groups_bp.route("/<group_id>", methods=["PUT"])
def rename_group(group_id):
    data = json_body()
    name = data.get("name")
    if name is not None and not isinstance(name, str):
        raise ValidationError("name must be a string", details={"name": "invalid"})
    group = ordering.rename_group(db.session, group_id, name)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(group.to_dict()), 200


@groups_bp.route("/<group_id>/toggle", methods=["POST"])
def toggle_group(group_id):
    collapsed = json_body().get("collapsed")
    if collapsed is not None and not isinstance(collapsed, bool):
        raise ValidationError("collapsed must be a boolean", details={"collapsed": "invalid"})
    group = ordering.toggle_collapsed(db.session, group_id, collapsed)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(group.to_dict()), 200


@groups_bp.route("/<group_id>", methods=["DELETE"])
def delete_group(group_id):
    ordering.delete_group(db.session, group_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": group_id}), 200
