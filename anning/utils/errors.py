"""Standardised API error responses.

Usage
-----
    from anning.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Paper not found")
    return api_error(E.INVALID_DEPTH, str(exc), details={"parent_id": pid})
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation – HTTP 400 / 422
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    INVALID_DEPTH = "ERR_INVALID_DEPTH"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Import / export
    IMPORT_MALFORMED = "ERR_IMPORT_MALFORMED"
    IMPORT_UNREADABLE = "ERR_IMPORT_UNREADABLE"
    IMPORT_COMMIT_FAILED = "ERR_IMPORT_COMMIT_FAILED"
    EXPORT_WRITE_FAILED = "ERR_EXPORT_WRITE_FAILED"

    # Collaborators – HTTP 502
    FETCH_FAILED = "ERR_FETCH_FAILED"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 422,
    E.INVALID_DEPTH: 422,
    E.NOT_FOUND: 404,
    E.IMPORT_MALFORMED: 400,
    E.IMPORT_UNREADABLE: 400,
    E.IMPORT_COMMIT_FAILED: 500,
    E.EXPORT_WRITE_FAILED: 500,
    E.FETCH_FAILED: 502,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for the desktop shell.
    status : int, optional
        HTTP status override. Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (field errors, import warnings, ...).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status
