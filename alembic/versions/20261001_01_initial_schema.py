"""
Initial Clipvault schema.

- Tenancy: users, client_groups, campaigns (+ assignments, videos).
- Collaboration: workspaces, workspace_members, folders.
- Content: videos, video_allowed_users, share_links.
- Analytics: view_sessions, view_session_quarters, view_session_marks.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic.
revision = "20261001_01_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

JSONType = postgresql.JSONB(astext_type=sa.Text()).with_variant(sa.JSON(), "sqlite")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # --- Tenancy ---
    op.create_table(
        "client_groups",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_client_groups"),
        sa.UniqueConstraint("name", name="uq_client_groups_name"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="user"),
        sa.Column("client_group_id", sa.Uuid(), sa.ForeignKey("client_groups.id", name="fk_users_client_group_id_client_groups", ondelete="SET NULL"), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("length(trim(email)) > 0", name="ck_users_email_not_blank"),
    )
    op.create_index("ix_users_client_group_id", "users", ["client_group_id"], unique=False)

    op.create_table(
        "campaigns",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("client_group_id", sa.Uuid(), sa.ForeignKey("client_groups.id", name="fk_campaigns_client_group_id_client_groups", ondelete="CASCADE"), nullable=False),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id", name="fk_campaigns_created_by_users", ondelete="SET NULL"), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_campaigns"),
    )
    op.create_index("ix_campaigns_client_group_id", "campaigns", ["client_group_id"], unique=False)

    op.create_table(
        "campaign_assignments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("campaign_id", sa.Uuid(), sa.ForeignKey("campaigns.id", name="fk_campaign_assignments_campaign_id_campaigns", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", name="fk_campaign_assignments_user_id_users", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="participant"),
        sa.Column("assigned_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_campaign_assignments"),
        sa.UniqueConstraint("campaign_id", "user_id", name="uq_campaign_assignments_campaign_user"),
    )
    op.create_index("ix_campaign_assignments_user_id", "campaign_assignments", ["user_id"], unique=False)

    # --- Collaboration ---
    op.create_table(
        "workspaces",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("owner_id", sa.Uuid(), sa.ForeignKey("users.id", name="fk_workspaces_owner_id_users", ondelete="RESTRICT"), nullable=False),
        sa.Column("settings", JSONType, nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_workspaces"),
    )
    op.create_index("ix_workspaces_owner_id", "workspaces", ["owner_id"], unique=False)

    op.create_table(
        "workspace_members",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id", name="fk_workspace_members_workspace_id_workspaces", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", name="fk_workspace_members_user_id_users", ondelete="CASCADE"), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="member"),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_workspace_members"),
        sa.UniqueConstraint("workspace_id", "user_id", name="uq_workspace_members_workspace_user"),
    )
    op.create_index("ix_workspace_members_user_id", "workspace_members", ["user_id"], unique=False)

    op.create_table(
        "folders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id", name="fk_folders_workspace_id_workspaces", ondelete="CASCADE"), nullable=False),
        sa.Column("parent_folder_id", sa.Uuid(), sa.ForeignKey("folders.id", name="fk_folders_parent_folder_id_folders"), nullable=True),
        sa.Column("path", sa.Text(), nullable=False),
        sa.Column("created_by", sa.Uuid(), sa.ForeignKey("users.id", name="fk_folders_created_by_users", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_folders"),
        sa.CheckConstraint("parent_folder_id IS NULL OR parent_folder_id <> id", name="ck_folders_not_own_parent"),
    )
    op.create_index("ix_folders_workspace_parent", "folders", ["workspace_id", "parent_folder_id"], unique=False)

    # --- Content ---
    op.create_table(
        "videos",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("storage_key", sa.String(length=1024), nullable=False),
        sa.Column("thumbnail_key", sa.String(length=1024), nullable=True),
        sa.Column("file_size", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("mime_type", sa.String(length=128), nullable=False, server_default="video/mp4"),
        sa.Column("duration", sa.Float(), nullable=True),
        sa.Column("owner_id", sa.Uuid(), sa.ForeignKey("users.id", name="fk_videos_owner_id_users", ondelete="CASCADE"), nullable=False),
        sa.Column("client_group_id", sa.Uuid(), sa.ForeignKey("client_groups.id", name="fk_videos_client_group_id_client_groups", ondelete="SET NULL"), nullable=True),
        sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id", name="fk_videos_workspace_id_workspaces", ondelete="SET NULL"), nullable=True),
        sa.Column("folder_id", sa.Uuid(), sa.ForeignKey("folders.id", name="fk_videos_folder_id_folders", ondelete="SET NULL"), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="ready"),
        sa.Column("access", sa.String(length=16), nullable=False, server_default="private"),
        sa.Column("settings", JSONType, nullable=False),
        sa.Column("views_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_videos"),
        sa.CheckConstraint("views_count >= 0", name="ck_videos_views_non_negative"),
        sa.CheckConstraint("file_size >= 0", name="ck_videos_size_non_negative"),
    )
    op.create_index("ix_videos_owner_id", "videos", ["owner_id"], unique=False)
    op.create_index("ix_videos_client_group_id", "videos", ["client_group_id"], unique=False)
    op.create_index("ix_videos_folder_id", "videos", ["folder_id"], unique=False)
    op.create_index("ix_videos_workspace_folder", "videos", ["workspace_id", "folder_id"], unique=False)

    op.create_table(
        "video_allowed_users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("video_id", sa.Uuid(), sa.ForeignKey("videos.id", name="fk_video_allowed_users_video_id_videos", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("granted_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_video_allowed_users"),
        sa.CheckConstraint("user_id IS NOT NULL OR email IS NOT NULL", name="ck_video_allowed_users_grant_has_subject"),
    )
    op.create_index("ix_video_allowed_users_video_id", "video_allowed_users", ["video_id"], unique=False)

    op.create_table(
        "campaign_videos",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("campaign_id", sa.Uuid(), sa.ForeignKey("campaigns.id", name="fk_campaign_videos_campaign_id_campaigns", ondelete="CASCADE"), nullable=False),
        sa.Column("video_id", sa.Uuid(), sa.ForeignKey("videos.id", name="fk_campaign_videos_video_id_videos", ondelete="CASCADE"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_campaign_videos"),
        sa.UniqueConstraint("campaign_id", "video_id", name="uq_campaign_videos_campaign_video"),
    )
    op.create_index("ix_campaign_videos_video", "campaign_videos", ["video_id"], unique=False)

    # Weak reference to videos: no FK
    op.create_table(
        "share_links",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("video_id", sa.Uuid(), nullable=False),
        sa.Column("issued_by", sa.Uuid(), nullable=False),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("require_email", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("access_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_share_links"),
        sa.UniqueConstraint("token", name="uq_share_links_token"),
    )
    op.create_index("ix_share_links_video_id", "share_links", ["video_id"], unique=False)

    # --- Analytics ---
    op.create_table(
        "view_sessions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("video_id", sa.Uuid(), sa.ForeignKey("videos.id", name="fk_view_sessions_video_id_videos", ondelete="CASCADE"), nullable=False),
        sa.Column("session_id", sa.String(length=128), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("watch_time", sa.Float(), nullable=False, server_default="0"),
        sa.Column("cta_clicked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("viewer_info", JSONType, nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_view_sessions"),
        sa.UniqueConstraint("video_id", "session_id", name="uq_view_sessions_video_session"),
        sa.CheckConstraint("watch_time >= 0", name="ck_view_sessions_watch_time_non_negative"),
    )
    op.create_index("ix_view_sessions_video_start", "view_sessions", ["video_id", "start_time"], unique=False)

    op.create_table(
        "view_session_quarters",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("video_id", sa.Uuid(), sa.ForeignKey("videos.id", name="fk_view_session_quarters_video_id_videos", ondelete="CASCADE"), nullable=False),
        sa.Column("session_id", sa.String(length=128), nullable=False),
        sa.Column("quarter", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_view_session_quarters"),
        sa.UniqueConstraint("video_id", "session_id", "quarter", name="uq_view_session_quarters_video_session_quarter"),
        sa.CheckConstraint("quarter BETWEEN 0 AND 3", name="ck_view_session_quarters_quarter_range"),
    )

    op.create_table(
        "view_session_marks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("video_id", sa.Uuid(), sa.ForeignKey("videos.id", name="fk_view_session_marks_video_id_videos", ondelete="CASCADE"), nullable=False),
        sa.Column("session_id", sa.String(length=128), nullable=False),
        sa.Column("quarter", sa.Integer(), nullable=False),
        sa.Column("position", sa.Float(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_view_session_marks"),
        sa.CheckConstraint("quarter BETWEEN 0 AND 3", name="ck_view_session_marks_quarter_range"),
    )
    op.create_index("ix_view_session_marks_video_session", "view_session_marks", ["video_id", "session_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_view_session_marks_video_session", table_name="view_session_marks")
    op.drop_table("view_session_marks")
    op.drop_table("view_session_quarters")
    op.drop_index("ix_view_sessions_video_start", table_name="view_sessions")
    op.drop_table("view_sessions")
    op.drop_index("ix_share_links_video_id", table_name="share_links")
    op.drop_table("share_links")
    op.drop_index("ix_campaign_videos_video", table_name="campaign_videos")
    op.drop_table("campaign_videos")
    op.drop_index("ix_video_allowed_users_video_id", table_name="video_allowed_users")
    op.drop_table("video_allowed_users")
    op.drop_index("ix_videos_workspace_folder", table_name="videos")
    op.drop_index("ix_videos_folder_id", table_name="videos")
    op.drop_index("ix_videos_client_group_id", table_name="videos")
    op.drop_index("ix_videos_owner_id", table_name="videos")
    op.drop_table("videos")
    op.drop_index("ix_folders_workspace_parent", table_name="folders")
    op.drop_table("folders")
    op.drop_index("ix_workspace_members_user_id", table_name="workspace_members")
    op.drop_table("workspace_members")
    op.drop_index("ix_workspaces_owner_id", table_name="workspaces")
    op.drop_table("workspaces")
    op.drop_index("ix_campaign_assignments_user_id", table_name="campaign_assignments")
    op.drop_table("campaign_assignments")
    op.drop_index("ix_campaigns_client_group_id", table_name="campaigns")
    op.drop_table("campaigns")
    op.drop_index("ix_users_client_group_id", table_name="users")
    op.drop_table("users")
    op.drop_table("client_groups")
