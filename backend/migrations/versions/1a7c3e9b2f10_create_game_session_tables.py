"""create catalog, game session and ranking tables

Revision ID: 1a7c3e9b2f10
Revises:
Create Date: 2026-10-18 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a7c3e9b2f10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=120), nullable=False),
        sa.Column('firstname', sa.String(length=60), nullable=False),
        sa.Column('lastname', sa.String(length=60), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
        sa.Column('avatar_url', sa.String(length=512), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_user_email', 'user', ['email'], unique=True)

    op.create_table(
        'deck',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=120), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('theme', sa.String(length=64), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_table(
        'user_deck',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False, index=True),
        sa.Column('deck_id', sa.Integer(), sa.ForeignKey('deck.id'), nullable=False, index=True),
        sa.Column('granted_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'deck_id', name='uq_user_deck'),
    )
    op.create_table(
        'artist',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('country', sa.String(length=64), nullable=True),
    )
    op.create_table(
        'album',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=160), nullable=False),
        sa.Column('release_year', sa.Integer(), nullable=True),
        sa.Column('artist_id', sa.Integer(), sa.ForeignKey('artist.id'), nullable=False),
    )
    op.create_table(
        'card',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('deck_id', sa.Integer(), sa.ForeignKey('deck.id'), nullable=False, index=True),
        sa.Column('artist_id', sa.Integer(), sa.ForeignKey('artist.id'), nullable=False),
        sa.Column('album_id', sa.Integer(), sa.ForeignKey('album.id'), nullable=True),
        sa.Column('song_name', sa.String(length=160), nullable=False),
        sa.Column('difficulty', sa.String(length=16), nullable=False),
        sa.Column('qr_token', sa.String(length=32), nullable=True, unique=True),
    )

    op.create_table(
        'game',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False, index=True),
        sa.Column('deck_id', sa.Integer(), sa.ForeignKey('deck.id'), nullable=False, index=True),
        sa.Column('mode', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, index=True),
        sa.Column('total_points', sa.Integer(), nullable=False),
        sa.Column('total_rounds', sa.Integer(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
    )
    op.create_index(
        'uq_game_started_user_deck', 'game', ['user_id', 'deck_id'], unique=True,
        postgresql_where=sa.text("status = 'started'"), sqlite_where=sa.text("status = 'started'"),
    )
    op.create_table(
        'game_participant',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id'), nullable=False, index=True),
        sa.Column('name', sa.String(length=80), nullable=False),
        sa.Column('total_points', sa.Integer(), nullable=False),
        sa.Column('total_rounds', sa.Integer(), nullable=False),
        sa.Column('turn_order', sa.Integer(), nullable=False),
    )
    op.create_table(
        'game_round',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id'), nullable=False, index=True),
        sa.Column('card_id', sa.Integer(), sa.ForeignKey('card.id'), nullable=False),
        sa.Column('song_correct', sa.Boolean(), nullable=False),
        sa.Column('artist_correct', sa.Boolean(), nullable=False),
        sa.Column('album_correct', sa.Boolean(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('played_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('game_id', 'card_id', name='uq_game_round_card'),
    )
    op.create_table(
        'game_participant_round',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('participant_id', sa.Integer(), sa.ForeignKey('game_participant.id'), nullable=False, index=True),
        sa.Column('card_id', sa.Integer(), sa.ForeignKey('card.id'), nullable=False),
        sa.Column('song_correct', sa.Boolean(), nullable=False),
        sa.Column('artist_correct', sa.Boolean(), nullable=False),
        sa.Column('album_correct', sa.Boolean(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('played_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('participant_id', 'card_id', name='uq_participant_round_card'),
    )
    op.create_table(
        'ranking',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False, index=True),
        sa.Column('deck_id', sa.Integer(), sa.ForeignKey('deck.id'), nullable=False, index=True),
        sa.Column('points_total', sa.Integer(), nullable=False),
        sa.Column('games_played', sa.Integer(), nullable=False),
        sa.Column('last_played_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('user_id', 'deck_id', name='uq_ranking_user_deck'),
    )


def downgrade():
    op.drop_index('uq_game_started_user_deck', table_name='game')
    for table in (
        'ranking', 'game_participant_round', 'game_round', 'game_participant', 'game',
        'card', 'album', 'artist', 'user_deck', 'deck',
    ):
        op.drop_table(table)
    op.drop_index('ix_user_email', table_name='user')
    op.drop_table('user')
