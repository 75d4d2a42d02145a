from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "groups",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_table(
        "sections",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("group_id", sa.Uuid(), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_sections_group_id", "sections", ["group_id"])

    op.create_table(
        "members",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("display_name", sa.String(length=120), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="member"),
        sa.Column("group_id", sa.Uuid(), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("section_id", sa.Uuid(), sa.ForeignKey("sections.id", ondelete="SET NULL"), nullable=True),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("points >= 0", name="ck_members_points_non_negative"),
    )
    op.create_index("ix_members_group_id", "members", ["group_id"])
    op.create_index("ix_members_section_id", "members", ["section_id"])

    op.create_table(
        "challenges",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("group_id", sa.Uuid(), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=True),
        sa.Column("title", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("starts_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("ends_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("points > 0", name="ck_challenges_points_positive"),
    )
    op.create_index("ix_challenges_group_id", "challenges", ["group_id"])

    op.create_table(
        "submissions",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("challenge_id", sa.Uuid(), sa.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False),
        sa.Column("member_id", sa.Uuid(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("attempt", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(length=24), nullable=False),
        sa.Column("started_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("submitted_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("proof_image_url", sa.Text(), nullable=True),
        sa.Column("member_comment", sa.Text(), nullable=True),
        sa.Column("validated_by", sa.Uuid(), nullable=True),
        sa.Column("validated_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("reviewer_comment", sa.Text(), nullable=True),
        sa.UniqueConstraint("challenge_id", "member_id", "attempt", name="uq_submission_attempt"),
    )
    op.create_index("ix_submissions_challenge_id", "submissions", ["challenge_id"])
    op.create_index("ix_submissions_member_id", "submissions", ["member_id"])
    op.create_index("ix_submissions_status", "submissions", ["status"])

    op.create_table(
        "points_entries",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("member_id", sa.Uuid(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("ref_submission_id", sa.Uuid(), sa.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("note", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("ref_submission_id", name="uq_points_entry_once_per_submission"),
        sa.CheckConstraint("amount > 0", name="ck_points_entry_amount_positive"),
    )
    op.create_index("ix_points_entries_member_id", "points_entries", ["member_id"])

def downgrade() -> None:
    op.drop_index("ix_points_entries_member_id", table_name="points_entries")
    op.drop_table("points_entries")
    op.drop_index("ix_submissions_status", table_name="submissions")
    op.drop_index("ix_submissions_member_id", table_name="submissions")
    op.drop_index("ix_submissions_challenge_id", table_name="submissions")
    op.drop_table("submissions")
    op.drop_index("ix_challenges_group_id", table_name="challenges")
    op.drop_table("challenges")
    op.drop_index("ix_members_section_id", table_name="members")
    op.drop_index("ix_members_group_id", table_name="members")
    op.drop_table("members")
    op.drop_index("ix_sections_group_id", table_name="sections")
    op.drop_table("sections")
    op.drop_table("groups")
