"""
HN Digest - Hacker News Summary Pipeline

Scrapes the Hacker News front page and the /front archive of flagged, dead
and duplicate stories, fetches the linked articles with a headless browser,
summarizes them with a language model and stores the results.
"""

__version__ = "0.1.0"
