"""External service clients for HN Digest."""
