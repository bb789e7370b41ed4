"""project_store_initial

Create the project store: workspaces, paper_groups, papers, events,
todo_items, definition_items.

Revision ID: 0a1b2c3d4e51
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "0a1b2c3d4e51"
down_revision = None
branch_labels = None
depends_on = None


def _id_columns():
    return [
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "workspaces" not in existing_tables:
        op.create_table(
            "workspaces",
            *_id_columns(),
            sa.Column("project_title", sa.String(length=300), nullable=False, server_default=""),
            sa.Column("research_objective", sa.Text(), nullable=False, server_default=""),
            sa.PrimaryKeyConstraint("id"),
        )

    if "paper_groups" not in existing_tables:
        op.create_table(
            "paper_groups",
            *_id_columns(),
            sa.Column("name", sa.String(length=200), nullable=False, server_default="New Group"),
            sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("is_collapsed", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("parent_id", sa.String(length=36), nullable=True,
                      comment="NULL for root groups"),
            sa.ForeignKeyConstraint(["parent_id"], ["paper_groups.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_pg_parent_order", "paper_groups", ["parent_id", "order_index"])

    if "papers" not in existing_tables:
        op.create_table(
            "papers",
            *_id_columns(),
            sa.Column("title", sa.Text(), nullable=False, server_default=""),
            sa.Column("short_title", sa.String(length=200), nullable=False, server_default=""),
            sa.Column("abstract_text", sa.Text(), nullable=False, server_default=""),
            sa.Column("source_url", sa.String(length=1000), nullable=False, server_default=""),
            sa.Column("authors_json", sa.Text(), nullable=False, server_default="[]"),
            sa.Column("notes_json", sa.Text(), nullable=False, server_default="{}"),
            sa.Column("paper_type", sa.String(length=30), nullable=False,
                      server_default="empirical work"),
            sa.Column("sort_index", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("group_id", sa.String(length=36), nullable=True, comment="NULL = ungrouped"),
            sa.Column("cached_file_path", sa.String(length=1000), nullable=True),
            sa.ForeignKeyConstraint(["group_id"], ["paper_groups.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_paper_group_sort", "papers", ["group_id", "sort_index"])

    if "events" not in existing_tables:
        op.create_table(
            "events",
            *_id_columns(),
            sa.Column("date", sa.DateTime(timezone=True), nullable=False),
            sa.Column("short_title", sa.String(length=300), nullable=False, server_default=""),
            sa.Column("summary_text", sa.Text(), nullable=False, server_default=""),
            sa.Column("event_type", sa.String(length=20), nullable=False,
                      server_default="informative"),
            sa.Column("url", sa.String(length=1000), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )

    if "todo_items" not in existing_tables:
        op.create_table(
            "todo_items",
            *_id_columns(),
            sa.Column("date", sa.DateTime(timezone=True), nullable=False),
            sa.Column("priority", sa.String(length=5), nullable=False, server_default="p3"),
            sa.Column("todo_text", sa.Text(), nullable=False, server_default=""),
            sa.Column("is_done", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.PrimaryKeyConstraint("id"),
        )

    if "definition_items" not in existing_tables:
        op.create_table(
            "definition_items",
            *_id_columns(),
            sa.Column("term", sa.String(length=300), nullable=False, server_default="new term"),
            sa.Column("definition_text", sa.Text(), nullable=False, server_default=""),
            sa.PrimaryKeyConstraint("id"),
        )


def downgrade():
    op.drop_table("definition_items")
    op.drop_table("todo_items")
    op.drop_table("events")
    op.drop_index("idx_paper_group_sort", table_name="papers")
    op.drop_table("papers")
    op.drop_index("idx_pg_parent_order", table_name="paper_groups")
    op.drop_table("paper_groups")
    op.drop_table("workspaces")
