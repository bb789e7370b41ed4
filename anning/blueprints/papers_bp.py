"""
Papers blueprint.

Endpoints:
    GET    /api/v1/papers                 — all papers, newest first
    POST   /api/v1/papers                 — add (appended to "ungrouped")
    GET    /api/v1/papers/<id>            — detail (+ authors_display)
    PUT    /api/v1/papers/<id>            — edit fields present in the body
    DELETE /api/v1/papers/<id>            — delete and close the scope gap
    PUT    /api/v1/papers/<id>/notes      — merge note sections {"notes": {...}}
    POST   /api/v1/papers/<id>/move       — {"group_id", "before_paper_id"}
    POST   /api/v1/papers/<id>/metadata   — fetch details and fill empty fields
    GET    /api/v1/papers/<id>/pdf        — local PDF, downloaded on first use
"""

import logging

from flask import Blueprint, jsonify, send_file

from anning.blueprints import json_body, register_error_handlers
from anning.core.exceptions import ValidationError
from anning.integrations.paper_details_gateway import get_gateway
from anning.models import db
from anning.services import ordering, paper_service, pdf_cache
from anning.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

papers_bp = Blueprint("papers_bp", __name__, url_prefix="/api/v1/papers")
register_error_handlers(papers_bp)


def _optional_id(data, key):
    value = data.get(key) or None
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{key} must be a string id or null", details={key: "invalid"})
    return value


def _detail(paper):
    body = paper.to_dict()
    body["authors_display"] = paper_service.authors_display(paper)
    return body


@papers_bp.route("", methods=["GET"])
def list_papers():
    papers = paper_service.list_papers(db.session)
    return jsonify({"items": [p.to_dict() for p in papers], "total": len(papers)}), 200


@papers_bp.route("", methods=["POST"])
def create_paper():
    """Body: {title, short_title?, abstract_text?, source_url, authors?, paper_type?}"""
    paper = paper_service.create_paper(db.session, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(_detail(paper)), 201


@papers_bp.route("/<paper_id>", methods=["GET"])
def get_paper(paper_id):
    paper = paper_service.get_paper(db.session, paper_id)
    return jsonify(_detail(paper)), 200


@papers_bp.route("/<paper_id>", methods=["PUT"])
def update_paper(paper_id):
    paper = paper_service.get_paper(db.session, paper_id)
    paper_service.update_paper(db.session, paper, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(_detail(paper)), 200


@papers_bp.route("/<paper_id>", methods=["DELETE"])
def delete_paper(paper_id):
    paper_service.delete_paper(db.session, paper_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": paper_id}), 200


@papers_bp.route("/<paper_id>/notes", methods=["PUT"])
def update_notes(paper_id):
    paper = paper_service.get_paper(db.session, paper_id)
    paper_service.update_notes(db.session, paper, json_body().get("notes"))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"id": paper.id, "notes": paper.notes}), 200


@papers_bp.route("/<paper_id>/move", methods=["POST"])
def move_paper(paper_id):
    """Drop a paper into a group (null = ungrouped), before another paper or at the end."""
    data = json_body()
    paper = ordering.move_paper(
        db.session,
        paper_id,
        target_group_id=_optional_id(data, "group_id"),
        before_paper_id=_optional_id(data, "before_paper_id"),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(paper.to_dict()), 200


@papers_bp.route("/<paper_id>/metadata", methods=["POST"])
def fetch_metadata(paper_id):
    """Fetch details for the paper's PDF URL and fill fields the user left empty."""
    paper = paper_service.get_paper(db.session, paper_id)
    metadata = get_gateway().fetch_metadata(paper.source_url)
    filled = paper_service.apply_metadata(db.session, paper, metadata)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({
        "paper": _detail(paper),
        "filled": filled,
        "metadata": metadata.to_dict(),
    }), 200


@papers_bp.route("/<paper_id>/pdf", methods=["GET"])
def get_pdf(paper_id):
    path = pdf_cache.resolve_local_path(db.session, paper_id)
    err = db_commit_or_error()
    if err:
        return err
    return send_file(path, mimetype="application/pdf")
