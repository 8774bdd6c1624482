"""Page fetch adapter: downloads a page and turns it into extraction-ready text.

Person cards found in the HTML are emitted as "Name: X, Title: Y" lines,
followed by the page's visible text. When OpenRouter is configured the
extraction instruction is applied to that text by an LLM; otherwise the
plain text is returned.
"""

import logging
import re

import httpx
from bs4 import BeautifulSoup, Tag

from app.services.errors import SourceUnavailable
from app.services.openrouter_service import OpenRouterService, get_openrouter_service

logger = logging.getLogger(__name__)

# Timeout for HTTP requests (seconds)
REQUEST_TIMEOUT = 10.0

# Pages shorter than this are treated as empty (bytes)
MIN_CONTENT_LENGTH = 200

MAX_TEXT_LINES = 1500

USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"

# Elements that never carry leadership content
STRIP_TAGS = ["script", "style", "noscript", "svg", "nav", "footer", "header", "form", "iframe"]

CARD_CLASS_PATTERN = re.compile(
    r"person|profile|team-member|team_member|bio|leader|executive|member|people", re.I
)
NAME_CLASS_PATTERN = re.compile(r"name", re.I)
TITLE_CLASS_PATTERN = re.compile(r"title|position|role|job", re.I)

TITLE_HINTS = (
    "ceo", "cfo", "cto", "coo", "ciso", "cio", "cmo", "chief", "president", "vice president",
    "vp", "director", "head of", "officer", "founder", "principal", "manager", "counsel",
    "partner", "chair", "engineer", "architect", "lead",
)


class WebPageFetcher:
    """Implements the Fetcher interface with httpx and BeautifulSoup."""

    def __init__(self, openrouter: OpenRouterService | None = None) -> None:
        self._client: httpx.AsyncClient | None = None
        self._openrouter = openrouter if openrouter is not None else get_openrouter_service()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=REQUEST_TIMEOUT,
                follow_redirects=True,
                headers={
                    "User-Agent": USER_AGENT,
                    "Accept": "text/html,application/xhtml+xml",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def fetch(self, url: str, instruction: str) -> str:
        """
        Fetch a page and return extraction-ready text.

        Args:
            url: Page URL
            instruction: Natural-language extraction directive

        Returns:
            Extracted text; empty when the page does not exist or is empty

        Raises:
            SourceUnavailable: On transport errors and non-404 HTTP errors
        """
        html = await self._fetch_page(url)
        if not html:
            return ""

        text = self.html_to_text(html)
        if not text:
            return ""

        if self._openrouter.is_configured:
            answer = await self._openrouter.follow_instruction(text, instruction)
            if answer:
                return answer
            logger.debug(f"LLM extraction returned nothing for {url}, using page text")

        return text

    async def _fetch_page(self, url: str) -> str | None:
        """
        Fetch HTML content from URL.

        Returns:
            HTML content, or None for missing or near-empty pages
        """
        client = await self._get_client()
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise SourceUnavailable(url, str(e) or type(e).__name__) from e

        if response.status_code in (404, 410):
            logger.debug(f"Page not found: {url}")
            return None
        if response.status_code >= 400:
            raise SourceUnavailable(url, f"HTTP {response.status_code}")

        content = response.text
        if len(content) < MIN_CONTENT_LENGTH:
            return None
        return content

    def html_to_text(self, html: str) -> str:
        """Convert HTML to person-card lines followed by visible text lines."""
        soup = BeautifulSoup(html, "lxml")
        for tag in soup(STRIP_TAGS):
            tag.decompose()

        lines = self._card_lines(soup)

        body = soup.body or soup
        for line in body.get_text(separator="\n", strip=True).splitlines():
            line = re.sub(r"\s+", " ", line).strip()
            if line:
                lines.append(line)

        return "\n".join(lines[:MAX_TEXT_LINES])

    def _card_lines(self, soup: BeautifulSoup) -> list[str]:
        lines: list[str] = []
        seen: set[str] = set()

        for card in self._find_person_cards(soup):
            pair = self._extract_from_card(card)
            if not pair:
                continue
            line = f"Name: {pair[0]}, Title: {pair[1]}"
            if line not in seen:
                seen.add(line)
                lines.append(line)

        # Headers directly followed by a title paragraph
        for header in soup.find_all(["h2", "h3", "h4", "h5"]):
            name = self._clean_text(header)
            next_elem = header.find_next_sibling()
            if not next_elem or not self._looks_like_name(name):
                continue
            title = self._clean_text(next_elem)
            if self._looks_like_title(title):
                line = f"Name: {name}, Title: {title}"
                if line not in seen:
                    seen.add(line)
                    lines.append(line)

        return lines

    def _find_person_cards(self, soup: BeautifulSoup) -> list[Tag]:
        cards: list[Tag] = []
        seen_elements: set[int] = set()
        for elem in soup.find_all(class_=CARD_CLASS_PATTERN):
            if id(elem) not in seen_elements:
                seen_elements.add(id(elem))
                cards.append(elem)
        return cards

    def _extract_from_card(self, card: Tag) -> tuple[str, str] | None:
        name_elem = (
            card.find(class_=NAME_CLASS_PATTERN)
            or card.find(["h2", "h3", "h4", "h5"])
            or card.find("strong")
        )
        title_elem = card.find(class_=TITLE_CLASS_PATTERN) or card.find("em")
        if not name_elem or not title_elem or name_elem is title_elem:
            return None

        name = self._clean_text(name_elem)
        title = self._clean_text(title_elem)
        if self._looks_like_name(name) and self._looks_like_title(title):
            return name, title
        return None

    def _clean_text(self, element: Tag) -> str:
        """Element text with spaces between text nodes, whitespace collapsed."""
        text = element.get_text(separator=" ", strip=True)
        return re.sub(r"\s+", " ", text).strip()

    def _looks_like_name(self, text: str) -> bool:
        if not text or len(text) < 3 or len(text) > 60:
            return False
        words = text.split()
        if len(words) < 2 or len(words) > 5:
            return False
        return not self._looks_like_title(text)

    def _looks_like_title(self, text: str) -> bool:
        if not text or len(text) < 2 or len(text) > 150:
            return False
        text_lower = " ".join(text.split()).lower()
        return any(re.search(rf"\b{re.escape(hint)}\b", text_lower) for hint in TITLE_HINTS)


_web_page_fetcher: WebPageFetcher | None = None


def get_web_page_fetcher() -> WebPageFetcher:
    """Get the singleton WebPageFetcher instance."""
    global _web_page_fetcher
    if _web_page_fetcher is None:
        _web_page_fetcher = WebPageFetcher()
    return _web_page_fetcher
