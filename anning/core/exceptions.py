"""
Project-store exception hierarchy.

Services raise only these types. Blueprints and CLI commands translate them
into HTTP responses / exit messages in one place.

Usage:
    from anning.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="PaperGroup", resource_id=group_id)
    raise ValidationError("Paper title is required", details={"title": "required"})

Taxonomy:
    OrderingError
        InvalidDepthError         — subgroup under a subgroup
        NotFoundError             — referenced entity missing
    ValidationError               — well-formed input violating a business rule
    ProjectImportError
        MalformedDocumentError    — schema/type mismatch, detected before any wipe
        UnreadableDocumentError   — source bytes could not be read / decoded
        CommitFailedError         — rebuild succeeded in memory, commit failed
    ProjectExportError
        ExportWriteError          — project file could not be written
    FetchError                    — PDF download / metadata fetch failed
"""


class OrderingError(Exception):
    """Base class for hierarchical ordering engine failures."""


class NotFoundError(OrderingError):
    """Raised when a referenced entity does not exist in the store.

    Args:
        resource: Model name (e.g. "Paper", "PaperGroup").
        resource_id: The ID that was looked up.
        reason: Optional extra context appended to the message.
    """

    def __init__(
        self,
        resource: str,
        resource_id: str | None = None,
        reason: str | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class InvalidDepthError(OrderingError):
    """Raised when an operation would nest groups deeper than two levels."""

    def __init__(self, parent_id: str) -> None:
        self.parent_id = parent_id
        super().__init__(
            f"PaperGroup id={parent_id} is a subgroup and cannot hold subgroups"
        )


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown (field name → description).
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


# ── Import / export ──────────────────────────────────────────────────────────


class ProjectImportError(Exception):
    """Base class for project import failures."""


class MalformedDocumentError(ProjectImportError):
    """The document failed schema validation. The store was not touched.

    Args:
        message: What is wrong.
        path: Location inside the document, e.g. ``papers[3].sortIndex``.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class UnreadableDocumentError(ProjectImportError):
    """The project file could not be read. The store was not touched."""


class CommitFailedError(ProjectImportError):
    """The rebuilt store could not be committed.

    The transaction was rolled back, so the previously open project is still
    in the store; the caller may retry or re-open from disk.
    """

    user_message = "Project may be in an inconsistent state, re-open from disk."


class ProjectExportError(Exception):
    """Base class for project export failures."""


class ExportWriteError(ProjectExportError):
    """The project file could not be written. Any previous file is intact."""


# ── Collaborators ────────────────────────────────────────────────────────────


class FetchError(Exception):
    """Raised by the PDF cache and the paper-details gateway.

    Args:
        message: Human-readable explanation.
        status_code: Upstream HTTP status, if one was received.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
