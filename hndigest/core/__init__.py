"""Core data model and processing for HN Digest."""
