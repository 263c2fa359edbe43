"""Application services: embedding generation and indexing."""
