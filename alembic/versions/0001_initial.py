"""initial

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "heliports",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("address", sa.String(length=300), nullable=False, server_default=""),
        sa.Column("google_map_url", sa.String(length=500), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )

    op.create_table(
        "courses",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("heliport_id", sa.String(length=36), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="15"),
        sa.Column("max_pax", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("min_pax", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("flight_times", sa.String(length=400), nullable=False, server_default=""),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_courses_heliport_id", "courses", ["heliport_id"])

    op.create_table(
        "slots",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("course_id", sa.String(length=36), nullable=False),
        sa.Column("heliport_id", sa.String(length=36), nullable=True),
        sa.Column("slot_date", sa.Date(), nullable=False),
        sa.Column("slot_time", sa.String(length=5), nullable=False),
        sa.Column("max_pax", sa.Integer(), nullable=False),
        sa.Column("current_pax", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=12), nullable=False, server_default="open"),
        sa.Column("suspended_reason", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("course_id", "slot_date", "slot_time", name="uq_slot_course_date_time"),
        sa.CheckConstraint("current_pax >= 0", name="ck_slot_current_pax_nonnegative"),
        sa.CheckConstraint("current_pax <= max_pax", name="ck_slot_current_pax_le_max"),
    )
    op.create_index("ix_slots_course_id", "slots", ["course_id"])
    op.create_index("ix_slots_heliport_id", "slots", ["heliport_id"])
    op.create_index("ix_slots_slot_date", "slots", ["slot_date"])

    op.create_table(
        "customers",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("phone", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("preferred_lang", sa.String(length=5), nullable=False, server_default="ja"),
        sa.Column("mypage_token", sa.String(length=128), nullable=True),
        sa.Column("mypage_token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_customers_email", "customers", ["email"], unique=True)
    op.create_index("ix_customers_mypage_token", "customers", ["mypage_token"], unique=True)

    op.create_table(
        "reservations",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("booking_number", sa.String(length=20), nullable=False),
        sa.Column("customer_id", sa.String(length=36), nullable=False),
        sa.Column("course_id", sa.String(length=36), nullable=False),
        sa.Column("slot_id", sa.String(length=36), nullable=False),
        sa.Column("reservation_date", sa.Date(), nullable=False),
        sa.Column("reservation_time", sa.String(length=5), nullable=False),
        sa.Column("pax", sa.Integer(), nullable=False),
        sa.Column("subtotal", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tax", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("payment_status", sa.String(length=20), nullable=False, server_default="unpaid"),
        sa.Column("payment_ref", sa.String(length=120), nullable=True),
        sa.Column("hold_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("booked_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", sa.String(length=120), nullable=True),
        sa.Column("cancellation_cause", sa.String(length=20), nullable=True),
        sa.Column("cancellation_reason", sa.String(length=500), nullable=True),
        sa.Column("cancellation_fee", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("refund_due", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("suspended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("suspended_reason", sa.String(length=500), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refunded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refunded_by", sa.String(length=120), nullable=True),
        sa.Column("refunded_amount", sa.Integer(), nullable=True),
        sa.Column("customer_notes", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("pax > 0", name="ck_reservation_pax_positive"),
        sa.CheckConstraint(
            "refunded_amount IS NULL OR refunded_amount <= total_price",
            name="ck_reservation_refund_le_price",
        ),
    )
    op.create_index("ix_reservations_booking_number", "reservations", ["booking_number"], unique=True)
    op.create_index("ix_reservations_customer_id", "reservations", ["customer_id"])
    op.create_index("ix_reservations_course_id", "reservations", ["course_id"])
    op.create_index("ix_reservations_slot_id", "reservations", ["slot_id"])
    op.create_index("ix_reservations_reservation_date", "reservations", ["reservation_date"])
    op.create_index("ix_reservations_status", "reservations", ["status"])
    op.create_index("ix_reservations_payment_status", "reservations", ["payment_status"])

    op.create_table(
        "payments",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("reservation_id", sa.String(length=36), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False, server_default="charge"),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="JPY"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="succeeded"),
        sa.Column("provider_ref", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_payments_reservation_id", "payments", ["reservation_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("log_type", sa.String(length=40), nullable=False),
        sa.Column("status", sa.String(length=12), nullable=False, server_default="success"),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("message", sa.Text(), nullable=False, server_default=""),
        sa.Column("target_table", sa.String(length=40), nullable=False),
        sa.Column("target_id", sa.String(length=36), nullable=False),
        sa.Column("actor", sa.String(length=120), nullable=False, server_default="system"),
        sa.Column("old_values_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("new_values_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_logs_log_type", "audit_logs", ["log_type"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_target_table", "audit_logs", ["target_table"])
    op.create_index("ix_audit_logs_target_id", "audit_logs", ["target_id"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

    op.create_table(
        "notification_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("reservation_id", sa.String(length=36), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("recipient", sa.String(length=320), nullable=False),
        sa.Column("subject", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=12), nullable=False, server_default="sending"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("reservation_id", "kind", name="uq_notification_reservation_kind"),
    )
    op.create_index("ix_notification_logs_reservation_id", "notification_logs", ["reservation_id"])

    op.create_table(
        "system_settings",
        sa.Column("key", sa.String(length=80), primary_key=True),
        sa.Column("value_json", sa.Text(), nullable=False, server_default="null"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("system_settings")
    op.drop_index("ix_notification_logs_reservation_id", table_name="notification_logs")
    op.drop_table("notification_logs")
    for ix in ("created_at", "target_id", "target_table", "action", "log_type"):
        op.drop_index(f"ix_audit_logs_{ix}", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_payments_reservation_id", table_name="payments")
    op.drop_table("payments")
    for ix in ("payment_status", "status", "reservation_date", "slot_id", "course_id", "customer_id", "booking_number"):
        op.drop_index(f"ix_reservations_{ix}", table_name="reservations")
    op.drop_table("reservations")
    op.drop_index("ix_customers_mypage_token", table_name="customers")
    op.drop_index("ix_customers_email", table_name="customers")
    op.drop_table("customers")
    for ix in ("slot_date", "heliport_id", "course_id"):
        op.drop_index(f"ix_slots_{ix}", table_name="slots")
    op.drop_table("slots")
    op.drop_index("ix_courses_heliport_id", table_name="courses")
    op.drop_table("courses")
    op.drop_table("heliports")
