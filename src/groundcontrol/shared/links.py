"""
Public URLs for BSD pages and stored event files.
"""

from urllib.parse import quote

from groundcontrol.config import Settings


def event_link(settings: Settings, event_id_obfuscated: str | None) -> str:
    return f"https://{settings.bsd_host}/page/event/detail/{event_id_obfuscated}"


def survey_url(settings: Settings, signup_form_slug: str | None) -> str:
    return f"https://{settings.bsd_host}/page/s/{signup_form_slug}"


def event_file_url(settings: Settings, s3_key: str) -> str:
    """S3 URL for an event file; the key is fully percent-encoded."""
    return f"https://{settings.s3_bucket}.s3.amazonaws.com/{quote(s3_key, safe='')}"
