from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3b1f9c2a7d10"
down_revision = None
branch_labels = None
depends_on = None


def _gateway_columns():
    return [
        sa.Column("payment_id", sa.String(), nullable=True),
        sa.Column("billplz_bill_id", sa.String(), nullable=True),
        sa.Column("paid_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("transaction_details", sa.JSON(), nullable=True),
        sa.Column("callback_key", sa.String(), nullable=True, index=True),
    ]


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade():
    op.create_table(
        "admin",
        sa.Column("id", sa.String(), primary_key=True, index=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False, unique=True, index=True),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False, server_default="admin"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("permissions", sa.JSON(), nullable=True),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(), primary_key=True, index=True),
        sa.Column("booking_type", sa.String(), nullable=False, server_default="court"),
        sa.Column("user_id", sa.String(), nullable=False, index=True),
        sa.Column("user_name", sa.String(), nullable=True),
        sa.Column("user_email", sa.String(), nullable=True),
        sa.Column("venue_name", sa.String(), nullable=True),
        sa.Column("venue_owner_id", sa.String(), nullable=True, index=True),
        sa.Column("court_name", sa.String(), nullable=True),
        sa.Column("court_number", sa.String(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time_slot", sa.String(), nullable=False),
        sa.Column("end_time", sa.String(), nullable=True),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending", index=True),
        sa.Column("payment_status", sa.String(), nullable=False, server_default="unpaid", index=True),
        *_gateway_columns(),
        sa.Column("released_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("released_by", sa.String(), nullable=True),
        sa.Column("refunded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refunded_by", sa.String(), nullable=True),
        sa.Column("refund_request_rejected", sa.Boolean(), nullable=True),
        sa.Column("refund_rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refund_rejected_by", sa.String(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "coach_appointments",
        sa.Column("id", sa.String(), primary_key=True, index=True),
        sa.Column("user_id", sa.String(), nullable=False, index=True),
        sa.Column("student_name", sa.String(), nullable=True),
        sa.Column("coach_id", sa.String(), nullable=False, index=True),
        sa.Column("coach_name", sa.String(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time_slot", sa.String(), nullable=False),
        sa.Column("end_time", sa.String(), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.Column("payment_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="pending", index=True),
        sa.Column("payment_status", sa.String(), nullable=False, server_default="unpaid", index=True),
        *_gateway_columns(),
        sa.Column("proof_photo_base64", sa.Text(), nullable=True),
        sa.Column("proof_notes", sa.Text(), nullable=True),
        sa.Column("proof_uploaded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verification_status", sa.String(), nullable=False, server_default="none"),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_by", sa.String(), nullable=True),
        sa.Column("verification_notes", sa.Text(), nullable=True),
        sa.Column("payment_released_to_coach", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("payment_released_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("coach_earnings", sa.Numeric(10, 2), nullable=True),
        sa.Column("platform_fee", sa.Numeric(10, 2), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(), primary_key=True, index=True),
        sa.Column("user_id", sa.String(), nullable=False, index=True),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("priority", sa.String(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade():
    op.drop_table("notifications")
    op.drop_table("coach_appointments")
    op.drop_table("bookings")
    op.drop_table("admin")
