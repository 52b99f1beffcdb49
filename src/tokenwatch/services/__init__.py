"""External service clients and pipeline services."""
