"""TokenWatch constants."""
