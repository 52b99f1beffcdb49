"""HTTP API: webhook ingestion and health."""
