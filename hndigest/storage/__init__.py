"""Persistence for HN Digest."""
