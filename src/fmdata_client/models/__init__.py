"""Option models for Data API record operations."""
