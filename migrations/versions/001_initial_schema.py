"""Initial schema for owners, restaurants, coupons, reviews, insights and jobs

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

Uniqueness rules are constraints, not application checks:
- restaurants (owner_id, slug) and public_id
- coupon_policies (restaurant_id, sentiment_type)
- customer_coupons (restaurant_id, email) and coupon_code
- insights (restaurant_id, time_range)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('external_id', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('external_id', name='uq_users_external_id'),
    )

    op.create_table(
        'restaurants',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('public_id', sa.String(32), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('logo_url', sa.String(2048), nullable=True),
        sa.Column('review_url', sa.String(2048), nullable=False),
        sa.Column('email_tone', sa.String(20), nullable=False, server_default='assist'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('public_id', name='uq_restaurants_public_id'),
        sa.UniqueConstraint('owner_id', 'slug', name='uq_restaurants_owner_slug'),
    )
    op.create_index('idx_restaurants_public_id_slug', 'restaurants', ['public_id', 'slug'])

    op.create_table(
        'coupon_policies',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('restaurant_id', sa.Uuid(), sa.ForeignKey('restaurants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sentiment_type', sa.String(20), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('reward', sa.String(255), nullable=False),
        sa.Column('is_single_use', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('send_delay_minutes', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('restaurant_id', 'sentiment_type', name='uq_coupon_policies_restaurant_sentiment'),
    )

    op.create_table(
        'reviews',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('restaurant_id', sa.Uuid(), sa.ForeignKey('restaurants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('stars', sa.Integer(), nullable=False),
        sa.Column('feedback_text', sa.Text(), nullable=True),
        sa.Column('liked_categories', sa.JSON(), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_reviews_restaurant_created', 'reviews', ['restaurant_id', 'created_at'])

    op.create_table(
        'customer_coupons',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('review_id', sa.Uuid(), sa.ForeignKey('reviews.id', ondelete='SET NULL'), nullable=True),
        sa.Column('restaurant_id', sa.Uuid(), sa.ForeignKey('restaurants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('coupon_code', sa.String(16), nullable=False),
        sa.Column('is_redeemed', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('redeemed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('scheduled_for', sa.DateTime(), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('coupon_code', name='uq_customer_coupons_code'),
        sa.UniqueConstraint('restaurant_id', 'email', name='uq_customer_coupons_restaurant_email'),
    )
    op.create_index('idx_customer_coupons_review', 'customer_coupons', ['review_id'])

    op.create_table(
        'insights',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('restaurant_id', sa.Uuid(), sa.ForeignKey('restaurants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('time_range', sa.String(20), nullable=False),
        sa.Column('sentiment_summary', sa.Text(), nullable=False),
        sa.Column('key_complaints', sa.JSON(), nullable=False),
        sa.Column('suggestions', sa.JSON(), nullable=False),
        sa.Column('generated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('restaurant_id', 'time_range', name='uq_insights_restaurant_time_range'),
    )

    op.create_table(
        'scheduled_jobs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('job_type', sa.String(50), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('run_after', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('idx_scheduled_jobs_status_run_after', 'scheduled_jobs', ['status', 'run_after'])


def downgrade() -> None:
    op.drop_index('idx_scheduled_jobs_status_run_after', table_name='scheduled_jobs')
    op.drop_table('scheduled_jobs')
    op.drop_table('insights')
    op.drop_index('idx_customer_coupons_review', table_name='customer_coupons')
    op.drop_table('customer_coupons')
    op.drop_index('idx_reviews_restaurant_created', table_name='reviews')
    op.drop_table('reviews')
    op.drop_table('coupon_policies')
    op.drop_index('idx_restaurants_public_id_slug', table_name='restaurants')
    op.drop_table('restaurants')
    op.drop_table('users')
