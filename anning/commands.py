"""
Flask CLI commands for project files.

    flask export-project PATH            write the store to a project file
    flask import-project PATH            replace the store with a project file
    flask new-project TITLE OBJECTIVE    wipe and start an empty project
    flask reset-project                  wipe everything

Failures exit non-zero with the error message on stderr.
"""

import logging

import click
from flask import current_app

from anning.core.exceptions import (
    ProjectExportError, ProjectImportError, ValidationError,
)
from anning.models import db
from anning.services import project_file, project_io

logger = logging.getLogger(__name__)


def register_commands(app):
    """Attach the project-file commands to ``app.cli``."""

    @app.cli.command("export-project")
    @click.argument("path", type=click.Path(dir_okay=False))
    def export_project_cmd(path):
        """Save the current project to PATH (.json added if missing)."""
        try:
            written = project_file.save_project(
                db.session, path, indent=current_app.config["PROJECT_FILE_INDENT"],
            )
        except ProjectExportError as exc:
            raise click.ClickException(str(exc)) from exc
        click.echo(f"Saved project to {written}")

    @app.cli.command("import-project")
    @click.argument("path", type=click.Path(dir_okay=False))
    def import_project_cmd(path):
        """Replace the current project with the contents of PATH."""
        try:
            report = project_file.load_project(db.session, path)
        except ProjectImportError as exc:
            raise click.ClickException(str(exc)) from exc
        counts = ", ".join(f"{name}={count}" for name, count in report.counts.items())
        click.echo(f"Imported {path}: {counts}")
        for warning in report.warnings:
            click.echo(f"warning: {warning}", err=True)

    @app.cli.command("new-project")
    @click.argument("title")
    @click.argument("objective")
    def new_project_cmd(title, objective):
        """Wipe the store and start a project with TITLE and OBJECTIVE."""
        try:
            workspace = project_io.new_project(db.session, title, objective)
        except (ValidationError, ProjectImportError) as exc:
            raise click.ClickException(str(exc)) from exc
        click.echo(f"Created project {workspace.project_title!r} ({workspace.id})")

    @app.cli.command("reset-project")
    @click.confirmation_option(prompt="Delete every paper, group and note?")
    def reset_project_cmd():
        """Delete everything in the store."""
        try:
            project_io.reset_store(db.session)
        except ProjectImportError as exc:
            raise click.ClickException(str(exc)) from exc
        click.echo("Project reset")
