"""Initial schema: users, roll records, voters, elections, ballots, fraud alerts, audit logs.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="voter"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("role IN ('voter', 'admin')", name="ck_users_role"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "roll_records",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("full_name", sa.String(200), nullable=True),
        sa.Column("father_name", sa.String(200), nullable=True),
        sa.Column("dob", sa.Date, nullable=True),
        sa.Column("age", sa.Integer, nullable=True),
        sa.Column("gender", sa.String(20), nullable=True),
        sa.Column("address_state", sa.String(100), nullable=True),
        sa.Column("address_district", sa.String(100), nullable=True),
        sa.Column("address_city", sa.String(100), nullable=True),
        sa.Column("full_address", sa.Text, nullable=True),
        sa.Column("aadhaar_number", sa.String(12), nullable=True),
        sa.Column("epic_number", sa.String(20), nullable=True),
        sa.Column("polling_booth", sa.String(200), nullable=True),
        sa.Column("source", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_roll_records_aadhaar_number", "roll_records", ["aadhaar_number"])
    op.create_index("idx_roll_records_epic_number", "roll_records", ["epic_number"])
    op.create_index("idx_roll_records_state_district", "roll_records", ["address_state", "address_district"])

    op.create_table(
        "voters",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Uuid, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("father_name", sa.String(200), nullable=True),
        sa.Column("dob", sa.Date, nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("address_state", sa.String(100), nullable=True),
        sa.Column("address_district", sa.String(100), nullable=True),
        sa.Column("address_city", sa.String(100), nullable=True),
        sa.Column("aadhaar_number", sa.String(12), nullable=True, unique=True),
        sa.Column("epic_number", sa.String(20), nullable=True, unique=True),
        sa.Column("document_type", sa.String(10), nullable=False),
        sa.Column("document_ref", sa.String(64), nullable=False),
        sa.Column("document_content_type", sa.String(50), nullable=False),
        sa.Column("face_embedding", sa.JSON, nullable=True),
        sa.Column("liveness_verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("verification_status", sa.String(20), nullable=False, server_default="NOT_STARTED"),
        sa.Column("electoral_roll_verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "electoral_roll_record_id",
            sa.Uuid,
            sa.ForeignKey("roll_records.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("roll_match_details", sa.JSON, nullable=True),
        sa.Column("manual_verify_requested", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("manual_verify_requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verification_note", sa.Text, nullable=True),
        sa.Column("is_blocked", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("block_reason", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "verification_status IN ('NOT_STARTED', 'PENDING', 'VERIFIED', 'REJECTED')",
            name="ck_voters_verification_status",
        ),
        sa.CheckConstraint("document_type IN ('AADHAAR', 'EPIC')", name="ck_voters_document_type"),
    )
    op.create_index("idx_voters_verification_status", "voters", ["verification_status"])
    op.create_index("idx_voters_manual_verify_requested", "voters", ["manual_verify_requested"])

    op.create_table(
        "elections",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("region", sa.String(200), nullable=True),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="UPCOMING"),
        sa.Column("stopped_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("status IN ('UPCOMING', 'ACTIVE', 'ENDED')", name="ck_elections_status"),
        sa.CheckConstraint("end_at > start_at", name="ck_elections_window"),
    )
    op.create_index("idx_elections_status", "elections", ["status"])

    op.create_table(
        "candidates",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("election_id", sa.Uuid, sa.ForeignKey("elections.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("party", sa.String(200), nullable=True),
        sa.Column("manifesto", sa.Text, nullable=True),
        sa.Column("vote_count", sa.Integer, nullable=False, server_default="0"),
        sa.CheckConstraint("vote_count >= 0", name="ck_candidates_vote_count"),
    )
    op.create_index("idx_candidates_election_id", "candidates", ["election_id"])

    op.create_table(
        "vote_transactions",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("election_id", sa.Uuid, sa.ForeignKey("elections.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("candidate_id", sa.Uuid, sa.ForeignKey("candidates.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("voter_id", sa.Uuid, sa.ForeignKey("voters.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("cast_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("integrity_token", sa.String(64), nullable=False, unique=True),
        sa.Column("risk_score", sa.Float, nullable=True),
        sa.UniqueConstraint("election_id", "voter_id", name="uq_vote_election_voter"),
    )
    op.create_index("idx_vote_transactions_candidate_id", "vote_transactions", ["candidate_id"])

    op.create_table(
        "fraud_alerts",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("voter_id", sa.Uuid, sa.ForeignKey("voters.id", ondelete="CASCADE"), nullable=False),
        sa.Column("election_id", sa.Uuid, sa.ForeignKey("elections.id", ondelete="CASCADE"), nullable=False),
        sa.Column("session_id", sa.String(64), nullable=False),
        sa.Column("signal", sa.String(30), nullable=False),
        sa.Column("reason", sa.String(200), nullable=False),
        sa.Column("risk_level", sa.String(10), nullable=False),
        sa.Column("risk_score", sa.Float, nullable=True),
        sa.Column("details", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("risk_level IN ('LOW', 'MEDIUM', 'HIGH')", name="ck_fraud_alerts_risk_level"),
    )
    op.create_index("idx_fraud_alerts_session", "fraud_alerts", ["voter_id", "election_id", "session_id"])
    op.create_index("idx_fraud_alerts_created_at", "fraud_alerts", ["created_at"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("actor_id", sa.Uuid, nullable=True),
        sa.Column("actor_username", sa.String(100), nullable=False),
        sa.Column("action", sa.String(40), nullable=False),
        sa.Column("resource_type", sa.String(50), nullable=False),
        sa.Column("resource_id", sa.String(64), nullable=True),
        sa.Column("details", sa.JSON, nullable=True),
    )
    op.create_index("ix_audit_logs_timestamp", "audit_logs", ["timestamp"])
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_resource_type", "audit_logs", ["resource_type"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("fraud_alerts")
    op.drop_table("vote_transactions")
    op.drop_table("candidates")
    op.drop_table("elections")
    op.drop_table("voters")
    op.drop_table("roll_records")
    op.drop_table("users")
