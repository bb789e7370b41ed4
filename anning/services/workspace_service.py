"""Workspace service — the singleton project header.

Transaction policy: flush() only; the caller commits.
"""
import logging

from anning.core.exceptions import ValidationError
from anning.models.project import Workspace

logger = logging.getLogger(__name__)


def get_workspace(session):
    """Return the project's workspace (earliest created), or None."""
    return (
        session.query(Workspace)
        .order_by(Workspace.created_at, Workspace.id)
        .first()
    )


def get_or_create_workspace(session):
    """Return the workspace, creating an empty one lazily if none exists."""
    workspace = get_workspace(session)
    if workspace is None:
        workspace = Workspace(project_title="", research_objective="")
        session.add(workspace)
        session.flush()
        logger.info("Created missing workspace %s", workspace.id)
    return workspace


def update_workspace(session, data):
    """Update project title / research objective from ``data`` (trimmed)."""
    for field in ("project_title", "research_objective"):
        if field in data and not isinstance(data[field], (str, type(None))):
            raise ValidationError(f"{field} must be a string", details={field: "invalid"})

    workspace = get_or_create_workspace(session)
    for field in ("project_title", "research_objective"):
        if field in data:
            setattr(workspace, field, (data[field] or "").strip())
    session.flush()
    return workspace
