from alembic import op
import sqlalchemy as sa


revision = "5e1d0c7a9b21"
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(bind, table_name: str) -> bool:
    insp = sa.inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    bind = op.get_bind()

    if not _table_exists(bind, "loyalty_profiles"):
        op.create_table(
            "loyalty_profiles",
            sa.Column("user_id", sa.String(length=128), primary_key=True, nullable=False),
            sa.Column("display_name", sa.String(length=200), nullable=True),
            sa.Column("email", sa.String(length=320), nullable=True),
            sa.Column("total_points", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("total_points_earned", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("total_points_redeemed", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("current_tier", sa.String(length=1), nullable=False, server_default="C"),
            sa.Column("referral_code", sa.String(length=20), nullable=False),
            sa.Column("referral_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("last_daily_login_claim", sa.TIMESTAMP(), nullable=True),
            sa.Column("last_points_expiry_notification", sa.TIMESTAMP(), nullable=True),
            sa.Column("joined_loyalty_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=False),
            sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True),
            sa.Column("updated_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True),
            sa.UniqueConstraint("referral_code", name="uq_loyalty_profiles_referral_code"),
            sa.CheckConstraint("total_points >= 0", name="ck_loyalty_profiles_total_points"),
            sa.CheckConstraint("total_points_earned >= 0", name="ck_loyalty_profiles_total_points_earned"),
            sa.CheckConstraint("total_points_redeemed >= 0", name="ck_loyalty_profiles_total_points_redeemed"),
            sa.CheckConstraint("referral_count >= 0", name="ck_loyalty_profiles_referral_count"),
        )

    if not _table_exists(bind, "point_transactions"):
        op.create_table(
            "point_transactions",
            sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("user_id", sa.String(length=128), sa.ForeignKey("loyalty_profiles.user_id"), nullable=False),
            sa.Column("sequence", sa.Integer(), nullable=False),
            sa.Column("type", sa.String(length=30), nullable=False),
            sa.Column("points", sa.Integer(), nullable=False),
            sa.Column("balance_after", sa.Integer(), nullable=False),
            sa.Column("description_ar", sa.String(length=255), nullable=True),
            sa.Column("description_en", sa.String(length=255), nullable=True),
            sa.Column("reference_id", sa.String(length=128), nullable=True),
            sa.Column("expires_at", sa.TIMESTAMP(), nullable=True),
            sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=False),
            sa.UniqueConstraint("user_id", "sequence", name="uq_point_transactions_user_sequence"),
        )
        op.create_index("ix_point_transactions_user_id", "point_transactions", ["user_id"])
        op.create_index("ix_point_transactions_reference_id", "point_transactions", ["reference_id"])
        op.create_index(
            "uq_point_transactions_signup",
            "point_transactions",
            ["user_id"],
            unique=True,
            postgresql_where=sa.text("type = 'signup'"),
            sqlite_where=sa.text("type = 'signup'"),
        )
        op.create_index(
            "uq_point_transactions_purchase_reference",
            "point_transactions",
            ["user_id", "reference_id"],
            unique=True,
            postgresql_where=sa.text("type = 'purchase' AND reference_id IS NOT NULL"),
            sqlite_where=sa.text("type = 'purchase' AND reference_id IS NOT NULL"),
        )

    if not _table_exists(bind, "rewards"):
        op.create_table(
            "rewards",
            sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("name_ar", sa.String(length=200), nullable=False),
            sa.Column("name_en", sa.String(length=200), nullable=False),
            sa.Column("description_ar", sa.String(length=1000), nullable=True),
            sa.Column("description_en", sa.String(length=1000), nullable=True),
            sa.Column("image_url", sa.String(length=1000), nullable=True),
            sa.Column("points_required", sa.Integer(), nullable=False),
            sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("category", sa.String(length=20), nullable=False, server_default="discount"),
            sa.Column("value", sa.Numeric(10, 2), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True),
            sa.Column("updated_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True),
            sa.CheckConstraint("points_required > 0", name="ck_rewards_points_required"),
            sa.CheckConstraint("quantity >= 0", name="ck_rewards_quantity"),
        )

    if not _table_exists(bind, "redemptions"):
        op.create_table(
            "redemptions",
            sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("user_id", sa.String(length=128), sa.ForeignKey("loyalty_profiles.user_id"), nullable=False),
            sa.Column("user_name", sa.String(length=200), nullable=True),
            sa.Column("user_email", sa.String(length=320), nullable=True),
            sa.Column("reward_id", sa.Uuid(as_uuid=True), nullable=False),
            sa.Column("reward_name_ar", sa.String(length=200), nullable=False),
            sa.Column("reward_name_en", sa.String(length=200), nullable=False),
            sa.Column("reward_image_url", sa.String(length=1000), nullable=True),
            sa.Column("points_spent", sa.Integer(), nullable=False),
            sa.Column("points_balance_after", sa.Integer(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("admin_notes", sa.String(length=2000), nullable=True),
            sa.Column("refunded", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=False),
            sa.Column("updated_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True),
            sa.Column("fulfilled_at", sa.TIMESTAMP(), nullable=True),
            sa.Column("cancelled_at", sa.TIMESTAMP(), nullable=True),
        )
        op.create_index("ix_redemptions_user_id", "redemptions", ["user_id"])
        op.create_index("ix_redemptions_reward_id", "redemptions", ["reward_id"])

    if not _table_exists(bind, "referrals"):
        op.create_table(
            "referrals",
            sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("referrer_id", sa.String(length=128), sa.ForeignKey("loyalty_profiles.user_id"), nullable=False),
            sa.Column("referrer_name", sa.String(length=200), nullable=True),
            sa.Column("referred_user_id", sa.String(length=128), nullable=False),
            sa.Column("referred_user_name", sa.String(length=200), nullable=True),
            sa.Column("referred_user_email", sa.String(length=320), nullable=True),
            sa.Column("points_awarded", sa.Integer(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="completed"),
            sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=False),
            sa.Column("completed_at", sa.TIMESTAMP(), nullable=True),
            sa.UniqueConstraint("referred_user_id", name="uq_referrals_referred_user_id"),
        )
        op.create_index("ix_referrals_referrer_id", "referrals", ["referrer_id"])

    if not _table_exists(bind, "notifications"):
        op.create_table(
            "notifications",
            sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("user_id", sa.String(length=128), nullable=False),
            sa.Column("type", sa.String(length=30), nullable=False),
            sa.Column("title_ar", sa.String(length=200), nullable=False),
            sa.Column("title_en", sa.String(length=200), nullable=False),
            sa.Column("message_ar", sa.String(length=1000), nullable=False),
            sa.Column("message_en", sa.String(length=1000), nullable=False),
            sa.Column("action_url", sa.String(length=500), nullable=True),
            sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=False),
        )
        op.create_index("ix_notifications_user_id", "notifications", ["user_id"])


def downgrade() -> None:
    bind = op.get_bind()

    for table_name in ("notifications", "referrals", "redemptions", "rewards", "point_transactions", "loyalty_profiles"):
        if _table_exists(bind, table_name):
            op.drop_table(table_name)
