"""Create articles and job_runs tables"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


revision = "20260301_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "articles",
        sa.Column("id", sa.String(length=32), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("source_url", sa.String(length=2048), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="ORIGINAL"),
        sa.Column("updated_content", sa.Text(), nullable=True),
        sa.Column("references", sa.JSON(), nullable=True),
        sa.Column("scraped_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index("ix_articles_status_scraped", "articles", ["status", "scraped_at"], unique=False)

    op.create_table(
        "job_runs",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("article_id", sa.String(length=32), nullable=False),
        sa.Column("task_name", sa.String(length=100), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("attempts_made", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index("ix_job_runs_article_status", "job_runs", ["article_id", "status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_job_runs_article_status", table_name="job_runs")
    op.drop_table("job_runs")
    op.drop_index("ix_articles_status_scraped", table_name="articles")
    op.drop_table("articles")
