"""reading ledger

Revision ID: 5e1c0d7a92b3
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5e1c0d7a92b3'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'books',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('author', sa.String(length=300), nullable=False),
        sa.Column('isbn', sa.String(length=17), nullable=True),
        sa.Column('publisher', sa.String(length=300), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('total_pages', sa.Integer(), nullable=True),
        sa.Column('rating', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('total_pages IS NULL OR total_pages > 0', name='ck_books_total_pages_positive'),
        sa.CheckConstraint('rating IS NULL OR rating BETWEEN 1 AND 5', name='ck_books_rating_range'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('isbn'),
    )

    op.create_table(
        'reading_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('book_id', sa.Integer(), nullable=False),
        sa.Column('session_number', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('started_date', sa.Date(), nullable=True),
        sa.Column('completed_date', sa.Date(), nullable=True),
        sa.Column('dnf_date', sa.Date(), nullable=True),
        sa.Column('review', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['book_id'], ['books.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('book_id', 'session_number'),
    )
    op.create_index('ix_reading_sessions_book_active', 'reading_sessions', ['book_id', 'is_active'])

    op.create_table(
        'progress_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('book_id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('current_page', sa.Integer(), nullable=False),
        sa.Column('current_percentage', sa.Integer(), nullable=False),
        sa.Column('pages_read', sa.Integer(), nullable=False),
        sa.Column('progress_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['book_id'], ['books.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['session_id'], ['reading_sessions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_progress_logs_book_id', 'progress_logs', ['book_id'])
    op.create_index('ix_progress_logs_session_id', 'progress_logs', ['session_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_progress_logs_session_id', 'progress_logs')
    op.drop_index('ix_progress_logs_book_id', 'progress_logs')
    op.drop_table('progress_logs')
    op.drop_index('ix_reading_sessions_book_active', 'reading_sessions')
    op.drop_table('reading_sessions')
    op.drop_table('books')
