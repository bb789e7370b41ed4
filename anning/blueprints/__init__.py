"""
anning
Blueprint registry and shared view helpers.
"""

import logging

from flask import request

from anning.core.exceptions import (
    CommitFailedError, ExportWriteError, FetchError, InvalidDepthError,
    MalformedDocumentError, NotFoundError, UnreadableDocumentError,
    ValidationError,
)
from anning.models import db
from anning.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def json_body():
    """Return the request's JSON object, or {} when absent or not an object."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def register_error_handlers(bp):
    """Map the service exception hierarchy onto JSON error responses for ``bp``.

    Every handler rolls the session back first so a failed request never
    leaves flushed-but-uncommitted rows behind for the next one.
    """

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        db.session.rollback()
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(InvalidDepthError)
    def _handle_invalid_depth(error: InvalidDepthError):
        db.session.rollback()
        return api_error(E.INVALID_DEPTH, str(error), details={"parent_id": error.parent_id})

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        db.session.rollback()
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @bp.errorhandler(MalformedDocumentError)
    def _handle_malformed(error: MalformedDocumentError):
        db.session.rollback()
        details = {"path": error.path} if error.path else None
        return api_error(E.IMPORT_MALFORMED, str(error), details=details)

    @bp.errorhandler(UnreadableDocumentError)
    def _handle_unreadable(error: UnreadableDocumentError):
        db.session.rollback()
        return api_error(E.IMPORT_UNREADABLE, str(error))

    @bp.errorhandler(CommitFailedError)
    def _handle_commit_failed(error: CommitFailedError):
        return api_error(E.IMPORT_COMMIT_FAILED, CommitFailedError.user_message,
                         details={"cause": str(error)})

    @bp.errorhandler(ExportWriteError)
    def _handle_export_write(error: ExportWriteError):
        return api_error(E.EXPORT_WRITE_FAILED, str(error))

    @bp.errorhandler(FetchError)
    def _handle_fetch(error: FetchError):
        db.session.rollback()
        details = {"upstream_status": error.status_code} if error.status_code else None
        return api_error(E.FETCH_FAILED, str(error), details=details)

    return bp
