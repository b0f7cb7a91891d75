"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def _timestamps(*, updated: bool = True) -> list:
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False))
    return columns


def upgrade() -> None:
    op.create_table(
        "bet_types",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("bet_type_id", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("digit_count", sa.Integer(), nullable=True),
        sa.Column("variants", sa.JSON(), nullable=True),
        sa.Column("region_rules", sa.JSON(), nullable=False),
        sa.Column("winning_ratio", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_bet_types")),
        sa.UniqueConstraint("bet_type_id", name=op.f("uq_bet_types_bet_type_id")),
    )

    op.create_table(
        "provinces",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("province_id", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=20), nullable=True),
        sa.Column("region", sa.String(length=2), nullable=False),
        sa.Column("draw_days", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_provinces")),
        sa.UniqueConstraint("province_id", name=op.f("uq_provinces_province_id")),
    )

    op.create_table(
        "draw_results",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("province_id", sa.String(length=50), nullable=False),
        sa.Column("draw_date", sa.Date(), nullable=False),
        *[
            sa.Column(f"{tier}_prize", sa.JSON(), nullable=True)
            for tier in (
                "special",
                "first",
                "second",
                "third",
                "fourth",
                "fifth",
                "sixth",
                "seventh",
                "eighth",
            )
        ],
        sa.Column("source", sa.String(length=50), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(
            ["province_id"],
            ["provinces.province_id"],
            name=op.f("fk_draw_results_province_id_provinces"),
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_draw_results")),
        sa.UniqueConstraint(
            "province_id", "draw_date", name="uq_draw_result_province_date"
        ),
    )
    op.create_index(
        op.f("ix_draw_results_province_id"), "draw_results", ["province_id"], unique=False
    )
    op.create_index(
        op.f("ix_draw_results_draw_date"), "draw_results", ["draw_date"], unique=False
    )

    op.create_table(
        "bets",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("bet_date", sa.Date(), nullable=False),
        sa.Column("draw_date", sa.Date(), nullable=False),
        sa.Column("region_type", sa.String(length=2), nullable=False),
        sa.Column("provinces", sa.JSON(), nullable=False),
        sa.Column("bet_type", sa.String(length=50), nullable=False),
        sa.Column("bet_variant", sa.String(length=50), nullable=True),
        sa.Column("selection_method", sa.String(length=50), nullable=False),
        sa.Column("numbers", sa.JSON(), nullable=False),
        sa.Column("denomination", sa.Numeric(precision=16, scale=2), nullable=False),
        sa.Column("total_amount", sa.Numeric(precision=16, scale=2), nullable=False),
        sa.Column(
            "potential_win_amount", sa.Numeric(precision=16, scale=2), nullable=False
        ),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("win_amount", sa.Numeric(precision=16, scale=2), nullable=True),
        sa.Column("winning_details", sa.JSON(), nullable=True),
        sa.Column("settled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("settlement_error", sa.Text(), nullable=True),
        sa.Column("needs_review", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_bets")),
    )
    op.create_index(op.f("ix_bets_user_id"), "bets", ["user_id"], unique=False)
    op.create_index(op.f("ix_bets_draw_date"), "bets", ["draw_date"], unique=False)
    op.create_index(
        "ix_bets_status_draw_date", "bets", ["status", "draw_date"], unique=False
    )

    op.create_table(
        "transactions",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("bet_id", ID_TYPE, nullable=False),
        sa.Column("amount", sa.Numeric(precision=16, scale=2), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(
            ["bet_id"],
            ["bets.id"],
            name=op.f("fk_transactions_bet_id_bets"),
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_transactions")),
        sa.UniqueConstraint("bet_id", "type", name="uq_transaction_bet_type"),
    )
    op.create_index(
        op.f("ix_transactions_user_id"), "transactions", ["user_id"], unique=False
    )
    op.create_index(
        op.f("ix_transactions_bet_id"), "transactions", ["bet_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_transactions_bet_id"), table_name="transactions")
    op.drop_index(op.f("ix_transactions_user_id"), table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_bets_status_draw_date", table_name="bets")
    op.drop_index(op.f("ix_bets_draw_date"), table_name="bets")
    op.drop_index(op.f("ix_bets_user_id"), table_name="bets")
    op.drop_table("bets")
    op.drop_index(op.f("ix_draw_results_draw_date"), table_name="draw_results")
    op.drop_index(op.f("ix_draw_results_province_id"), table_name="draw_results")
    op.drop_table("draw_results")
    op.drop_table("provinces")
    op.drop_table("bet_types")
