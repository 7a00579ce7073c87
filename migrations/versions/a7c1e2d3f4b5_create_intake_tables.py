"""create_intake_tables

Create submissions, the three ordered child collections, build logs and
AI generation logs.

Revision ID: a7c1e2d3f4b5
Revises:
Create Date: 2026-10-19 09:30:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "a7c1e2d3f4b5"
down_revision = None
branch_labels = None
depends_on = None

_TEXT_FIELDS = (
    # name, type
    ("business_name", sa.String(length=200)),
    ("business_category", sa.String(length=60)),
    ("raw_description", sa.Text()),
    ("polished_description", sa.Text()),
    ("year_established", sa.String(length=10)),
    ("owner_names", sa.String(length=200)),
    ("license_number", sa.String(length=100)),
    ("insurance_info", sa.String(length=200)),
    ("street", sa.String(length=200)),
    ("city", sa.String(length=100)),
    ("state", sa.String(length=40)),
    ("zip", sa.String(length=20)),
    ("primary_phone", sa.String(length=40)),
    ("secondary_phone", sa.String(length=40)),
    ("email", sa.String(length=200)),
    ("existing_website", sa.String(length=500)),
    ("gbp_url", sa.String(length=500)),
    ("facebook", sa.String(length=500)),
    ("instagram", sa.String(length=500)),
    ("youtube", sa.String(length=500)),
    ("linkedin", sa.String(length=500)),
    ("nextdoor", sa.String(length=500)),
    ("primary_city", sa.String(length=100)),
    ("additional_cities", sa.Text()),
    ("county", sa.String(length=100)),
    ("service_radius", sa.String(length=40)),
    ("primary_color", sa.String(length=20)),
    ("secondary_color", sa.String(length=20)),
    ("tone", sa.String(length=20)),
    ("design_style", sa.String(length=200)),
    ("tagline", sa.String(length=300)),
    ("ai_tagline_options", sa.Text()),
    ("what_makes_different", sa.Text()),
    ("warranties", sa.String(length=300)),
    ("financing", sa.String(length=300)),
    ("hero_headline", sa.String(length=300)),
    ("hero_subheadline", sa.Text()),
    ("about_us", sa.Text()),
    ("why_choose_us", sa.Text()),
    ("cta_text", sa.Text()),
    ("google_review_count", sa.String(length=20)),
    ("google_star_rating", sa.String(length=10)),
    ("certifications", sa.Text()),
    ("site_url", sa.String(length=500)),
    ("published_url", sa.String(length=500)),
)


def _child_fk():
    return sa.Column(
        "submission_id", sa.Integer(),
        sa.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False,
    )


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "submissions" not in existing_tables:
        op.create_table(
            "submissions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("access_token", sa.String(length=64), nullable=False),
            sa.Column("vertical", sa.String(length=40), nullable=False, server_default="home_services"),
            sa.Column("status", sa.String(length=30), nullable=False, server_default="draft"),
            *[sa.Column(name, type_, nullable=True) for name, type_ in _TEXT_FIELDS],
            sa.Column("emergency_service", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("services_version", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("testimonials_version", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("business_hours_version", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
            sa.CheckConstraint(
                "status IN ('draft','submitted','in_review','building','ready_for_qc',"
                "'client_preview','approved','published','archived')",
                name="ck_submission_status",
            ),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_submissions_access_token", "submissions", ["access_token"], unique=True)
        op.create_index("ix_submissions_status", "submissions", ["status"])
        op.create_index("ix_submissions_email", "submissions", ["email"])

    if "services" not in existing_tables:
        op.create_table(
            "services",
            sa.Column("id", sa.Integer(), nullable=False),
            _child_fk(),
            sa.Column("service_name", sa.String(length=200), nullable=True),
            sa.Column("category", sa.String(length=60), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("ai_description", sa.Text(), nullable=True),
            sa.Column("price_range", sa.String(length=100), nullable=True),
            sa.Column("is_emergency", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_services_submission_id", "services", ["submission_id"])

    if "testimonials" not in existing_tables:
        op.create_table(
            "testimonials",
            sa.Column("id", sa.Integer(), nullable=False),
            _child_fk(),
            sa.Column("quote_text", sa.Text(), nullable=True),
            sa.Column("author_name", sa.String(length=120), nullable=True),
            sa.Column("author_city", sa.String(length=120), nullable=True),
            sa.Column("rating", sa.Integer(), nullable=False, server_default="5"),
            sa.Column("service_type", sa.String(length=120), nullable=True),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_testimonials_submission_id", "testimonials", ["submission_id"])

    if "business_hours" not in existing_tables:
        op.create_table(
            "business_hours",
            sa.Column("id", sa.Integer(), nullable=False),
            _child_fk(),
            sa.Column("day_of_week", sa.String(length=12), nullable=True),
            sa.Column("open_time", sa.String(length=8), nullable=True),
            sa.Column("close_time", sa.String(length=8), nullable=True),
            sa.Column("is_closed", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_business_hours_submission_id", "business_hours", ["submission_id"])

    if "build_logs" not in existing_tables:
        op.create_table(
            "build_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            _child_fk(),
            sa.Column("provider", sa.String(length=40), nullable=False, server_default="stub"),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="queued"),
            sa.Column("message", sa.Text(), nullable=True),
            sa.Column("requested_by", sa.String(length=150), nullable=True),
            sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_build_logs_submission_id", "build_logs", ["submission_id"])

    if "ai_generation_logs" not in existing_tables:
        op.create_table(
            "ai_generation_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("provider", sa.String(length=30), nullable=False),
            sa.Column("model", sa.String(length=80), nullable=False),
            sa.Column("tone", sa.String(length=20), nullable=True),
            sa.Column("prompt_tokens", sa.Integer(), nullable=True),
            sa.Column("completion_tokens", sa.Integer(), nullable=True),
            sa.Column("cost_usd", sa.Float(), nullable=True),
            sa.Column("latency_ms", sa.Integer(), nullable=True),
            sa.Column("prompt_preview", sa.String(length=200), nullable=True),
            sa.Column("success", sa.Boolean(), nullable=True),
            sa.Column("error_message", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )


def downgrade():
    for table in ("ai_generation_logs", "build_logs", "business_hours",
                  "testimonials", "services", "submissions"):
        op.drop_table(table)
