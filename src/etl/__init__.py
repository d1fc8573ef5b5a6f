"""Review ingestion core: normalization, deduplication, verification and scoring."""
