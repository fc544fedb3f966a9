"""Content extraction module - turn an HTML page into flat text fragments and links."""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from bs4 import BeautifulSoup, Comment, NavigableString

from sitechat.core.ingestion.web_scraping.url_utils import (
    base_of,
    is_in_domain,
    normalize_url,
)

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")

NOISE_TAGS = ["script", "style", "noscript", "iframe", "svg", "canvas"]
CONTAINER_TAGS = ["div", "span", "section", "article", "aside", "main"]
HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
LABEL_ATTRIBUTES = ("alt", "title", "aria-label")


def collapse_whitespace(text: str) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    return _WHITESPACE_RE.sub(" ", text).strip()


@dataclass
class ExtractionConfig:
    """Minimum fragment lengths per source (a fragment must be strictly longer)."""

    min_heading_length: int = 2
    min_paragraph_length: int = 10
    min_list_item_length: int = 10
    min_container_text_length: int = 15
    min_attribute_length: int = 3
    min_structured_data_length: int = 10
    structured_data_max_depth: int = 5
    fallback_fragment_threshold: int = 5


@dataclass
class ExtractedPage:
    """Text and links extracted from a single page."""

    url: str
    title: str
    fragments: List[str] = field(default_factory=list)
    links: List[str] = field(default_factory=list)

    @property
    def content(self) -> str:
        """All fragments joined into one whitespace-collapsed blob."""
        return collapse_whitespace(" ".join(self.fragments))


class ContentExtractor:
    """Extract clean text fragments and in-domain links from HTML pages.

    Fragments are collected in a fixed order of signals:
    1. Meta and Open Graph descriptions, Open Graph title, meta keywords
    2. Headings
    3. Paragraphs
    4. List items
    5. Direct text of generic containers
    6. alt / title / aria-label attributes
    7. String leaves of JSON-LD structured data
    8. Whole-body text when the signals above found too little
    """

    def __init__(self, config: Optional[ExtractionConfig] = None):
        """Initialize content extractor with configuration."""
        self.config = config or ExtractionConfig()

    def extract(self, url: str, html: str, origin: Optional[str] = None) -> ExtractedPage:
        """Parse HTML and extract fragments and links.

        Args:
            url: URL the HTML was fetched from (relative links resolve against it)
            html: Raw HTML
            origin: Crawl origin; defaults to the origin of ``url``

        Returns:
            ExtractedPage with deduplicated fragments and in-domain links
        """
        soup = BeautifulSoup(html, "html.parser")
        return self.extract_from_soup(soup, url, origin)

    def extract_from_soup(
        self, soup: BeautifulSoup, url: str, origin: Optional[str] = None
    ) -> ExtractedPage:
        """Extract fragments and links from an already parsed document.

        The document is modified: noise elements are removed from the tree.
        """
        origin = origin or base_of(url)

        # Anchors and JSON-LD must be read before noise elements are stripped
        links = self.discover_links(soup, url, origin)
        structured_data = self._read_structured_data(soup)
        title = self._extract_title(soup, url)

        for tag in soup(NOISE_TAGS):
            tag.decompose()

        fragments: List[str] = []
        fragments.extend(self._meta_fragments(soup))
        fragments.extend(
            self._element_texts(soup, HEADING_TAGS, self.config.min_heading_length)
        )
        fragments.extend(
            self._element_texts(soup, ["p"], self.config.min_paragraph_length)
        )
        fragments.extend(
            self._element_texts(soup, ["li"], self.config.min_list_item_length)
        )
        fragments.extend(self._container_fragments(soup))
        fragments.extend(self._attribute_fragments(soup))
        fragments.extend(self._structured_data_fragments(structured_data))

        if len(fragments) < self.config.fallback_fragment_threshold:
            body = soup.body or soup
            body_text = collapse_whitespace(body.get_text(" ", strip=True))
            if body_text:
                logger.debug(f"Using whole-body fallback for {url}")
                fragments.append(body_text)

        unique_fragments = list(dict.fromkeys(fragments))
        logger.debug(
            f"Extracted {len(unique_fragments)} fragments and {len(links)} links from {url}"
        )

        return ExtractedPage(url=url, title=title, fragments=unique_fragments, links=links)

    def discover_links(self, soup: BeautifulSoup, page_url: str, origin: str) -> List[str]:
        """Collect normalized in-domain links from anchors, in document order.

        Args:
            soup: Parsed document
            page_url: URL of the page being parsed
            origin: Crawl origin

        Returns:
            Unique normalized URLs
        """
        hrefs = [anchor.get("href") for anchor in soup.find_all("a", href=True)]
        return self.filter_links(hrefs, page_url, origin)

    def filter_links(self, hrefs: List[str], page_url: str, origin: str) -> List[str]:
        """Apply the same in-domain filter and normalization to raw hrefs.

        Used for links read out of a rendered DOM.
        """
        links: List[str] = []
        seen = set()
        for href in hrefs:
            if not isinstance(href, str) or not is_in_domain(href, origin, page_url):
                continue
            link = normalize_url(href, page_url)
            if link not in seen:
                seen.add(link)
                links.append(link)
        return links

    def _extract_title(self, soup: BeautifulSoup, url: str) -> str:
        """Page title from <title>, then og:title, then the first h1, then the URL."""
        if soup.title and soup.title.string:
            title = collapse_whitespace(soup.title.get_text())
            if title:
                return title

        og_title = soup.find("meta", property="og:title")
        if og_title and og_title.get("content"):
            return collapse_whitespace(og_title["content"])

        h1 = soup.find("h1")
        if h1:
            heading = collapse_whitespace(h1.get_text(" ", strip=True))
            if heading:
                return heading

        return url

    def _meta_fragments(self, soup: BeautifulSoup) -> List[str]:
        fragments = []

        description = self._meta_content(soup, name="description")
        og_description = self._meta_content(soup, property="og:description")
        og_title = self._meta_content(soup, property="og:title")
        keywords = self._meta_content(soup, name="keywords")

        if description:
            fragments.append(description)
        if og_description and og_description != description:
            fragments.append(og_description)
        if og_title:
            fragments.append(og_title)
        if keywords:
            fragments.append(keywords)

        return fragments

    @staticmethod
    def _meta_content(soup: BeautifulSoup, **attrs: str) -> Optional[str]:
        tag = soup.find("meta", attrs=attrs)
        if not tag:
            return None
        content = tag.get("content")
        if not isinstance(content, str):
            return None
        return collapse_whitespace(content) or None

    @staticmethod
    def _element_texts(soup: BeautifulSoup, names: List[str], min_length: int) -> List[str]:
        texts = []
        for element in soup.find_all(names):
            text = collapse_whitespace(element.get_text(" ", strip=True))
            if len(text) > min_length:
                texts.append(text)
        return texts

    def _container_fragments(self, soup: BeautifulSoup) -> List[str]:
        """Only text nodes that are direct children, so nested blocks are not counted twice."""
        fragments = []
        for element in soup.find_all(CONTAINER_TAGS):
            direct_text = " ".join(
                str(child)
                for child in element.children
                if isinstance(child, NavigableString) and not isinstance(child, Comment)
            )
            text = collapse_whitespace(direct_text)
            if len(text) > self.config.min_container_text_length:
                fragments.append(text)
        return fragments

    def _attribute_fragments(self, soup: BeautifulSoup) -> List[str]:
        fragments = []
        for element in soup.find_all(True):
            for attribute in LABEL_ATTRIBUTES:
                value = element.get(attribute)
                if not isinstance(value, str):
                    continue
                text = collapse_whitespace(value)
                if len(text) > self.config.min_attribute_length:
                    fragments.append(text)
        return fragments

    @staticmethod
    def _read_structured_data(soup: BeautifulSoup) -> List[Any]:
        blocks = []
        for script in soup.find_all("script", type="application/ld+json"):
            raw = script.string or script.get_text()
            if not raw or not raw.strip():
                continue
            try:
                blocks.append(json.loads(raw))
            except json.JSONDecodeError as e:
                logger.debug(f"Skipping invalid JSON-LD block: {e}")
        return blocks

    def _structured_data_fragments(self, blocks: List[Any]) -> List[str]:
        fragments: List[str] = []
        for block in blocks:
            self._collect_strings(block, 0, fragments)
        return fragments

    def _collect_strings(self, node: Any, depth: int, out: List[str]) -> None:
        if depth > self.config.structured_data_max_depth:
            return
        if isinstance(node, str):
            text = collapse_whitespace(node)
            if len(text) > self.config.min_structured_data_length:
                out.append(text)
        elif isinstance(node, dict):
            for value in node.values():
                self._collect_strings(value, depth + 1, out)
        elif isinstance(node, list):
            for item in node:
                self._collect_strings(item, depth + 1, out)
