"""
Text sanitization utilities for HN Digest.
"""
import html
import re

NO_SUMMARY = "no summary available"
TRUNCATION_NOTICE = "\n\n[Content truncated]"
REDACTED = "REDACTED"

IPV4_PATTERN = re.compile(r'(?<!\d)(?:\d{1,3}\.){3}\d{1,3}(?!\.?\d)')
# Challenge-page phrasing only; a summary that merely mentions captchas is kept
CAPTCHA_PATTERN = re.compile(
    r'(?:complete|solve) the captcha|captcha (?:challenge|verification) (?:is )?required|'
    r'verify (?:that )?you are (?:a )?human|are you a robot|'
    r'checking your browser before accessing|'
    r'unusual traffic from your (?:computer )?network',
    re.IGNORECASE,
)
# "Core idea:", "insight_2:", "**Context**:" at the start of a line; URLs are left alone
LABEL_PATTERN = re.compile(
    r'^[ \t]*(?:[-*][ \t]+)?\**[A-Za-z][\w\-]*(?:[ _][\w\-]+){0,2}\**:(?=\s|$)[ \t]*',
    re.MULTILINE,
)
BLANK_RUN_PATTERN = re.compile(r'\n[ \t]*(?:\n[ \t]*)+')


def escape_prompt_text(text: str) -> str:
    """Escape <, > and & so page text cannot open or close prompt markup."""
    return html.escape(text or '', quote=False)


def truncate_content(text: str, max_length: int) -> str:
    """
    Cut text to ``max_length`` characters and append a truncation notice.

    Args:
        text: Text to truncate
        max_length: Maximum number of characters kept

    Returns:
        The text unchanged if short enough, else the truncated text plus notice
    """
    if len(text) <= max_length:
        return text
    return text[:max_length] + TRUNCATION_NOTICE


def redact_ip_addresses(text: str) -> str:
    return IPV4_PATTERN.sub(REDACTED, text)


def strip_label_prefixes(text: str) -> str:
    return LABEL_PATTERN.sub('', text)


def collapse_blank_lines(text: str) -> str:
    return BLANK_RUN_PATTERN.sub('\n\n', text).strip()


def looks_like_captcha(text: str) -> bool:
    return bool(CAPTCHA_PATTERN.search(text or ''))


def is_no_summary(text: str) -> bool:
    cleaned = (text or '').strip().strip('.').strip().lower()
    return not cleaned or cleaned == NO_SUMMARY


def clean_summary(text: str) -> str:
    """
    Post-process model output before it is stored.

    Captcha pages become the no-summary sentinel; otherwise IPv4 addresses are
    redacted, echoed field labels removed and blank-line runs collapsed.

    Args:
        text: Raw summary text

    Returns:
        Cleaned summary, or NO_SUMMARY
    """
    if looks_like_captcha(text):
        return NO_SUMMARY
    text = redact_ip_addresses(text)
    text = strip_label_prefixes(text)
    text = collapse_blank_lines(text)
    return text or NO_SUMMARY
