"""Article retrieval for URL queries: fetch a page and reduce it to readable text."""

from __future__ import annotations

import logging
import re
from typing import Optional

import requests
from bs4 import BeautifulSoup

from honest_analyst import config

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"^(http|https)://[^ \"]+$")
JUNK_TAGS = ("script", "style", "nav", "footer", "header", "aside", "iframe", "noscript")
MIN_ARTICLE_CHARS = 200
USER_AGENT = "Mozilla/5.0 (compatible; HonestAnalyst/0.1)"


def is_url(text: str) -> bool:
    """True when the whole query is a single http(s) URL."""
    return bool(URL_PATTERN.match((text or "").strip()))


def extract_text_from_html(html: str) -> str:
    """Drop navigation/script chrome and collapse whitespace."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(list(JUNK_TAGS)):
        tag.decompose()
    body = soup.body or soup
    text = body.get_text(separator=" ")
    return re.sub(r"\s+", " ", text).strip()


def fetch_url_content(url: str, timeout: Optional[float] = None) -> Optional[str]:
    """
    Download url and return its article text, or None when the request fails or
    the page holds too little text to be worth grounding the research on.
    """
    try:
        logger.info("Attempting to fetch content for: %s", url)
        resp = requests.get(
            url,
            timeout=timeout or config.http_timeout(),
            headers={"User-Agent": USER_AGENT},
        )
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.warning("Fetch failed for %s, falling back to LLM retrieval: %s", url, e)
        return None

    text = extract_text_from_html(resp.text)
    if len(text) > MIN_ARTICLE_CHARS:
        logger.info("Successfully scraped %d chars.", len(text))
        return text
    logger.info("Fetched page for %s holds only %d chars; ignoring it.", url, len(text))
    return None
