"""
WSGI / Flask CLI entry point.

Usage:
    flask --app wsgi run
    flask --app wsgi export-project project.json
    flask --app wsgi db upgrade
"""

from anning import create_app

app = create_app()
