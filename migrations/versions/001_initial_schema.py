"""Initial kanban schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from alembic import op

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("""
        DO $$ BEGIN
            CREATE TYPE kanban_board_type AS ENUM ('personal', 'team');
            CREATE TYPE kanban_board_member_role AS ENUM ('owner', 'editor', 'viewer');
            CREATE TYPE kanban_card_priority AS ENUM ('low', 'medium', 'high', 'urgent');
            CREATE TYPE kanban_activity_type AS ENUM (
                'board_created', 'board_updated', 'board_archived',
                'column_created', 'column_updated', 'column_deleted', 'column_reordered',
                'card_created', 'card_updated', 'card_deleted', 'card_moved',
                'card_archived', 'card_assigned', 'cards_reordered',
                'comment_added', 'comment_updated', 'comment_deleted',
                'member_added', 'member_removed', 'member_role_changed'
            );
        EXCEPTION
            WHEN duplicate_object THEN NULL;
        END $$
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS kanban_boards (
            id SERIAL PRIMARY KEY,
            name VARCHAR NOT NULL,
            description VARCHAR,
            type kanban_board_type NOT NULL DEFAULT 'personal',
            team_id VARCHAR,
            owner_id VARCHAR NOT NULL,
            background_color VARCHAR NOT NULL DEFAULT '#ffffff',
            is_archived BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_kanban_boards_team_id ON kanban_boards (team_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_kanban_boards_owner_id ON kanban_boards (owner_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS kanban_board_members (
            id SERIAL PRIMARY KEY,
            board_id INTEGER NOT NULL REFERENCES kanban_boards(id) ON DELETE CASCADE,
            user_id VARCHAR NOT NULL,
            role kanban_board_member_role NOT NULL DEFAULT 'viewer',
            added_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            CONSTRAINT uq_kanban_board_member UNIQUE (board_id, user_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_kanban_board_members_board_id ON kanban_board_members (board_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_kanban_board_members_user_id ON kanban_board_members (user_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS kanban_columns (
            id SERIAL PRIMARY KEY,
            board_id INTEGER NOT NULL REFERENCES kanban_boards(id) ON DELETE CASCADE,
            name VARCHAR NOT NULL,
            position INTEGER NOT NULL DEFAULT 0,
            wip_limit INTEGER,
            color VARCHAR NOT NULL DEFAULT '#gray',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_kanban_columns_board_position ON kanban_columns (board_id, position)"
    )
    op.execute("""
        CREATE TABLE IF NOT EXISTS kanban_cards (
            id SERIAL PRIMARY KEY,
            column_id INTEGER NOT NULL REFERENCES kanban_columns(id) ON DELETE CASCADE,
            board_id INTEGER NOT NULL REFERENCES kanban_boards(id) ON DELETE CASCADE,
            title VARCHAR NOT NULL,
            description TEXT,
            position INTEGER NOT NULL DEFAULT 0,
            priority kanban_card_priority NOT NULL DEFAULT 'medium',
            due_date TIMESTAMP,
            assignee_id VARCHAR,
            labels JSON NOT NULL DEFAULT '[]',
            is_archived BOOLEAN NOT NULL DEFAULT FALSE,
            created_by VARCHAR NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_kanban_cards_board_id ON kanban_cards (board_id)")
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_kanban_cards_column_live_position "
        "ON kanban_cards (column_id, is_archived, position)"
    )
    op.execute("""
        CREATE TABLE IF NOT EXISTS kanban_comments (
            id SERIAL PRIMARY KEY,
            card_id INTEGER NOT NULL REFERENCES kanban_cards(id) ON DELETE CASCADE,
            user_id VARCHAR NOT NULL,
            content TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_kanban_comments_card_id ON kanban_comments (card_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS kanban_activities (
            id SERIAL PRIMARY KEY,
            board_id INTEGER NOT NULL REFERENCES kanban_boards(id) ON DELETE CASCADE,
            card_id INTEGER,
            user_id VARCHAR,
            type kanban_activity_type NOT NULL,
            details JSON NOT NULL DEFAULT '{}',
            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_kanban_activities_board_id ON kanban_activities (board_id)")
    op.execute("""
        CREATE TABLE IF NOT EXISTS kanban_templates (
            id SERIAL PRIMARY KEY,
            name VARCHAR NOT NULL,
            description VARCHAR,
            structure JSON NOT NULL,
            is_public BOOLEAN NOT NULL DEFAULT FALSE,
            category VARCHAR NOT NULL DEFAULT 'general',
            created_by VARCHAR NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS kanban_templates")
    op.execute("DROP TABLE IF EXISTS kanban_activities")
    op.execute("DROP TABLE IF EXISTS kanban_comments")
    op.execute("DROP TABLE IF EXISTS kanban_cards")
    op.execute("DROP TABLE IF EXISTS kanban_columns")
    op.execute("DROP TABLE IF EXISTS kanban_board_members")
    op.execute("DROP TABLE IF EXISTS kanban_boards")
    op.execute("DROP TYPE IF EXISTS kanban_activity_type")
    op.execute("DROP TYPE IF EXISTS kanban_card_priority")
    op.execute("DROP TYPE IF EXISTS kanban_board_member_role")
    op.execute("DROP TYPE IF EXISTS kanban_board_type")
