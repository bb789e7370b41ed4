"""
anning — project store models.

Shared Flask-SQLAlchemy handle. Every model module imports ``db`` from here;
``create_app`` binds it to the application.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
