"""Add embedding columns and HNSW cosine indexes for semantic search

Revision ID: 002
Revises: 001
Create Date: 2026-10-05 10:30:00.000000

Vector size must match EMBEDDING_DIMENSIONS (1536 for text-embedding-3-small).
"""
from alembic import op

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None

EMBEDDING_DIMENSIONS = 1536

SEARCHABLE_TABLES = ('items', 'shops', 'categories')


def upgrade():
    # Enable pgvector extension (idempotent)
    op.execute('CREATE EXTENSION IF NOT EXISTS vector')

    for table in SEARCHABLE_TABLES:
        # NULL until the indexer has embedded the row
        op.execute(f'ALTER TABLE {table} ADD COLUMN IF NOT EXISTS embedding VECTOR({EMBEDDING_DIMENSIONS})')

        # HNSW index for cosine distance (<=>) k-NN search
        op.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_{table}_embedding_hnsw
            ON {table}
            USING hnsw (embedding vector_cosine_ops)
            WITH (m = 16, ef_construction = 64)
        """)


def downgrade():
    for table in SEARCHABLE_TABLES:
        op.execute(f'DROP INDEX IF EXISTS idx_{table}_embedding_hnsw')
        op.execute(f'ALTER TABLE {table} DROP COLUMN IF EXISTS embedding')

    # Note: We don't drop the vector extension as other tables might use it
