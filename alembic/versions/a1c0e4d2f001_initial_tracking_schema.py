"""initial tracking schema

Revision ID: a1c0e4d2f001
Revises:
Create Date: 2026-10-19 10:00:00.000000

Hey future me - this is the whole schema in one go:
- artists / artist_releases (releases cascade with their artist)
- games
- notifications with the PARTIAL unique index "one active notification per
  (subject, release)" - retracted/expired rows don't count toward it
- user_roles (role lookup for the X-User-Id header)
- job_locks (shared exclusivity table for UpdateCoordinator)
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a1c0e4d2f001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "artists",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("links", sa.JSON(), nullable=False),
        sa.Column("platform_stats", sa.JSON(), nullable=False),
        sa.Column("total_followers", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("average_popularity", sa.Float(), nullable=True),
        sa.Column("image_url", sa.String(512), nullable=True),
        sa.Column("genres", sa.JSON(), nullable=False),
        sa.Column("last_release", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_stats_update", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_artists_user_id", "artists", ["user_id"])
    op.create_index("ix_artists_name", "artists", ["name"])
    op.create_index("ix_artists_last_stats_update", "artists", ["last_stats_update"])

    op.create_table(
        "artist_releases",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "artist_id",
            sa.String(36),
            sa.ForeignKey("artists.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("platform", sa.String(20), nullable=False),
        sa.Column("native_id", sa.String(255), nullable=False),
        sa.Column("native_key", sa.String(300), nullable=False),
        sa.Column("name", sa.String(512), nullable=False),
        sa.Column("release_type", sa.String(32), nullable=False, server_default="album"),
        sa.Column("release_date", sa.String(32), nullable=True),
        sa.Column("total_tracks", sa.Integer(), nullable=True),
        sa.Column("popularity", sa.Integer(), nullable=True),
        sa.Column("url", sa.String(512), nullable=True),
        sa.Column("image_url", sa.String(512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "artist_id", "native_key", name="uq_artist_releases_artist_native_key"
        ),
    )
    op.create_index("ix_artist_releases_artist_id", "artist_releases", ["artist_id"])

    op.create_table(
        "games",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("platform", sa.String(50), nullable=False, server_default="steam"),
        sa.Column("url", sa.String(512), nullable=True),
        sa.Column("image_url", sa.String(512), nullable=True),
        sa.Column("release_date", sa.String(64), nullable=True),
        sa.Column("release_status", sa.String(20), nullable=False, server_default="unknown"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_games_user_id", "games", ["user_id"])
    op.create_index("ix_games_release_status", "games", ["release_status"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("subject_type", sa.String(10), nullable=False),
        sa.Column("subject_id", sa.String(36), nullable=False),
        sa.Column("release_key", sa.String(300), nullable=False),
        sa.Column("release_id", sa.String(36), nullable=True),
        sa.Column("title", sa.String(512), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("platform_url", sa.String(512), nullable=True),
        sa.Column("image_url", sa.String(512), nullable=True),
        sa.Column("state", sa.String(10), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("state_changed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("retraction_reason", sa.String(255), nullable=True),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_subject_id", "notifications", ["subject_id"])
    op.create_index("ix_notifications_state_expires_at", "notifications", ["state", "expires_at"])
    op.create_index(
        "uq_notifications_active_subject_release",
        "notifications",
        ["subject_type", "subject_id", "release_key"],
        unique=True,
        sqlite_where=sa.text("state = 'active'"),
        postgresql_where=sa.text("state = 'active'"),
    )

    op.create_table(
        "user_roles",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "job_locks",
        sa.Column("key", sa.String(128), primary_key=True),
        sa.Column("owner", sa.String(64), nullable=False),
        sa.Column("acquired_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("job_locks")
    op.drop_table("user_roles")
    op.drop_index("uq_notifications_active_subject_release", table_name="notifications")
    op.drop_index("ix_notifications_state_expires_at", table_name="notifications")
    op.drop_index("ix_notifications_subject_id", table_name="notifications")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_games_release_status", table_name="games")
    op.drop_index("ix_games_user_id", table_name="games")
    op.drop_table("games")
    op.drop_index("ix_artist_releases_artist_id", table_name="artist_releases")
    op.drop_table("artist_releases")
    op.drop_index("ix_artists_last_stats_update", table_name="artists")
    op.drop_index("ix_artists_name", table_name="artists")
    op.drop_index("ix_artists_user_id", table_name="artists")
    op.drop_table("artists")
