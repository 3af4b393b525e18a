"""Listing and content fetchers for HN Digest."""
