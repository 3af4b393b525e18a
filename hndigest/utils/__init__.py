"""Utility helpers for HN Digest."""
