"""create_diagnostics_and_spare_parts

Revision ID: 3c1e9a7b2d40
Revises:
Create Date: 2026-10-12 09:14:03.412871

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3c1e9a7b2d40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


SEARCH_SIMILAR_DIAGNOSTICS = """
CREATE OR REPLACE FUNCTION search_similar_diagnostics(
    p_appliance TEXT,
    p_brand TEXT,
    p_problem TEXT,
    p_error_code TEXT,
    p_threshold REAL
)
RETURNS TABLE (
    id UUID,
    appliance_type VARCHAR,
    brand VARCHAR,
    problem_description TEXT,
    error_code VARCHAR,
    error_code_meaning TEXT,
    possible_causes JSONB,
    diy_solutions JSONB,
    professional_services JSONB,
    skills_required JSONB,
    safety_warnings JSONB,
    priority_level VARCHAR,
    estimated_cost VARCHAR,
    difficulty_level VARCHAR,
    recommended_action VARCHAR,
    estimated_time VARCHAR,
    service_reason TEXT,
    similarity_score REAL,
    occurrence_count BIGINT
)
LANGUAGE sql STABLE
AS $$
    WITH scoped AS (
        SELECT d.*,
               similarity(lower(d.problem_description), lower(p_problem)) AS score,
               COUNT(*) OVER (
                   PARTITION BY lower(d.problem_description), d.error_code
               ) AS occurrences
        FROM diagnostics d
        WHERE lower(d.appliance_type) = lower(p_appliance)
          AND lower(d.brand) = lower(p_brand)
          AND (p_error_code IS NULL OR d.error_code IS NULL
               OR upper(d.error_code) = upper(p_error_code))
    )
    SELECT s.id, s.appliance_type, s.brand, s.problem_description,
           s.error_code, s.error_code_meaning,
           s.possible_causes, s.diy_solutions, s.professional_services,
           s.skills_required, s.safety_warnings,
           s.priority_level, s.estimated_cost, s.difficulty_level,
           s.recommended_action, s.estimated_time, s.service_reason,
           s.score, s.occurrences
    FROM scoped s
    WHERE s.score >= p_threshold
    ORDER BY s.score DESC, s.created_at DESC
    LIMIT 5;
$$;
"""

SEARCH_SPARE_PARTS = """
CREATE OR REPLACE FUNCTION search_spare_parts(
    p_category TEXT,
    p_brand TEXT,
    p_model TEXT
)
RETURNS TABLE (
    id UUID,
    category VARCHAR,
    brand VARCHAR,
    model_number VARCHAR,
    url TEXT,
    match_type TEXT,
    similarity_score REAL
)
LANGUAGE sql STABLE
AS $$
    SELECT sp.id, sp.category, sp.brand, sp.model_number, sp.url,
           CASE WHEN upper(sp.model_number) = upper(p_model)
                THEN 'exact' ELSE 'fuzzy' END,
           CASE WHEN upper(sp.model_number) = upper(p_model)
                THEN 1.0::REAL
                ELSE similarity(upper(sp.model_number), upper(p_model)) END AS score
    FROM spare_parts sp
    WHERE lower(sp.category) = lower(p_category)
      AND lower(sp.brand) = lower(p_brand)
      AND (upper(sp.model_number) = upper(p_model)
           OR similarity(upper(sp.model_number), upper(p_model)) >= 0.3)
    ORDER BY score DESC, sp.model_number
    LIMIT 20;
$$;
"""


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")

    op.create_table('diagnostics',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('appliance_type', sa.String(length=50), nullable=False),
    sa.Column('brand', sa.String(length=50), nullable=False),
    sa.Column('problem_description', sa.Text(), nullable=False),
    sa.Column('error_code', sa.String(length=10), nullable=True),
    sa.Column('error_code_meaning', sa.Text(), nullable=True),
    sa.Column('possible_causes', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column('diy_solutions', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column('professional_services', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column('skills_required', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column('safety_warnings', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column('source_urls', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column('priority_level', sa.String(length=10), nullable=False),
    sa.Column('estimated_cost', sa.String(length=50), nullable=False),
    sa.Column('difficulty_level', sa.String(length=20), nullable=False),
    sa.Column('recommended_action', sa.String(length=20), nullable=False),
    sa.Column('estimated_time', sa.String(length=50), nullable=False),
    sa.Column('service_reason', sa.Text(), nullable=True),
    sa.Column('was_cached', sa.Boolean(), nullable=False),
    sa.Column('confidence_score', sa.Float(), nullable=True),
    sa.Column('converted_to_booking', sa.Boolean(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_diagnostics_email'), 'diagnostics', ['email'], unique=False)
    op.create_index(op.f('ix_diagnostics_appliance_type'), 'diagnostics', ['appliance_type'], unique=False)
    op.create_index(op.f('ix_diagnostics_brand'), 'diagnostics', ['brand'], unique=False)
    op.create_index(op.f('ix_diagnostics_error_code'), 'diagnostics', ['error_code'], unique=False)
    op.create_index(op.f('ix_diagnostics_created_at'), 'diagnostics', ['created_at'], unique=False)
    op.execute(
        "CREATE INDEX ix_diagnostics_problem_trgm ON diagnostics "
        "USING gin (lower(problem_description) gin_trgm_ops)"
    )

    op.create_table('spare_parts',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('category', sa.String(length=100), nullable=False),
    sa.Column('brand', sa.String(length=100), nullable=False),
    sa.Column('model_number', sa.String(length=100), nullable=False),
    sa.Column('url', sa.Text(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_spare_parts_category'), 'spare_parts', ['category'], unique=False)
    op.create_index(op.f('ix_spare_parts_brand'), 'spare_parts', ['brand'], unique=False)
    op.create_index(op.f('ix_spare_parts_model_number'), 'spare_parts', ['model_number'], unique=False)
    op.execute(
        "CREATE INDEX ix_spare_parts_model_trgm ON spare_parts "
        "USING gin (upper(model_number) gin_trgm_ops)"
    )

    op.execute(SEARCH_SIMILAR_DIAGNOSTICS)
    op.execute(SEARCH_SPARE_PARTS)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS search_spare_parts(TEXT, TEXT, TEXT)")
    op.execute(
        "DROP FUNCTION IF EXISTS search_similar_diagnostics(TEXT, TEXT, TEXT, TEXT, REAL)"
    )
    op.execute("DROP INDEX IF EXISTS ix_spare_parts_model_trgm")
    op.drop_index(op.f('ix_spare_parts_model_number'), table_name='spare_parts')
    op.drop_index(op.f('ix_spare_parts_brand'), table_name='spare_parts')
    op.drop_index(op.f('ix_spare_parts_category'), table_name='spare_parts')
    op.drop_table('spare_parts')
    op.execute("DROP INDEX IF EXISTS ix_diagnostics_problem_trgm")
    op.drop_index(op.f('ix_diagnostics_created_at'), table_name='diagnostics')
    op.drop_index(op.f('ix_diagnostics_error_code'), table_name='diagnostics')
    op.drop_index(op.f('ix_diagnostics_brand'), table_name='diagnostics')
    op.drop_index(op.f('ix_diagnostics_appliance_type'), table_name='diagnostics')
    op.drop_index(op.f('ix_diagnostics_email'), table_name='diagnostics')
    op.drop_table('diagnostics')
