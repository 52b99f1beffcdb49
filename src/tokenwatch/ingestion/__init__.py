"""Ingestion boundary: payload normalisation and field mapping."""
