"""Data models shared across the pipeline."""
