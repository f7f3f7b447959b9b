"""Extraction of structured data and check inputs from fetched HTML."""

import json
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any
from urllib.parse import urljoin, urlparse

import structlog
from bs4 import BeautifulSoup

from ..checks.rules import find_schema_nodes
from ..models import Page, PageType

logger = structlog.get_logger()

OPENGRAPH_TAGS = ("og:title", "og:description", "og:image", "og:type", "og:url", "og:site_name")

LICENSE_META_NAMES = ("license", "ai-license", "ai-usage", "ai-content-license")

CONTACT_PATTERN = re.compile(r"contact|about", re.IGNORECASE)
RETURNS_PATTERN = re.compile(r"return|refund", re.IGNORECASE)
SHIPPING_PATTERN = re.compile(r"shipping|delivery", re.IGNORECASE)

POLICY_SEGMENTS = ("policy", "policies", "privacy", "terms", "returns", "refund", "shipping", "legal")
CATEGORY_SEGMENTS = ("collections", "collection", "category", "categories", "c", "shop", "catalog")

MARKETING_TERMS = (
    "amazing",
    "best ever",
    "best-in-class",
    "game-changer",
    "game changing",
    "incredible",
    "must-have",
    "revolutionary",
    "unbeatable",
    "world-class",
)


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def extract_json_ld(soup: BeautifulSoup) -> list[Any]:
    """Parse every application/ld+json block.

    Blocks that are not valid JSON are dropped one by one.
    """
    blocks = []
    for script in soup.find_all("script", attrs={"type": re.compile(r"application/ld\+json", re.I)}):
        raw = script.string or script.get_text() or ""
        if not raw.strip():
            continue
        try:
            blocks.append(json.loads(raw))
        except json.JSONDecodeError as e:
            logger.debug("Dropping invalid JSON-LD block", error=str(e))
    return blocks


def extract_meta_tags(soup: BeautifulSoup) -> dict[str, str]:
    """Collect title, description, canonical, robots and OpenGraph tags."""
    tags: dict[str, str] = {}

    if soup.title and soup.title.string:
        tags["title"] = soup.title.string.strip()

    for meta in soup.find_all("meta"):
        name = (meta.get("name") or meta.get("property") or "").strip().lower()
        content = meta.get("content")
        if content is None:
            continue
        if name in ("description", "robots") or name in OPENGRAPH_TAGS or name in LICENSE_META_NAMES:
            tags.setdefault(name, content.strip())

    for link in soup.find_all("link", href=True):
        rel = [value.lower() for value in (link.get("rel") or [])]
        if "canonical" in rel:
            tags.setdefault("canonical", link["href"].strip())
        if "license" in rel:
            tags.setdefault("license", link["href"].strip())

    return tags


def extract_links(soup: BeautifulSoup, base_url: str) -> list[tuple[str, str]]:
    """Return (absolute href, anchor text) pairs for navigable links."""
    links = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if href.startswith(("javascript:", "mailto:", "tel:", "#")):
            continue
        links.append((urljoin(base_url, href), anchor.get_text(" ", strip=True)))
    return links


def _find_link(links: list[tuple[str, str]], pattern: re.Pattern) -> str | None:
    for href, text in links:
        if pattern.search(urlparse(href).path) or pattern.search(text):
            return href
    return None


def classify_page(url: str, json_ld: list[Any]) -> PageType:
    """Guess the page type from the URL and structured data."""
    if find_schema_nodes(json_ld, "Product"):
        return PageType.PRODUCT

    path = urlparse(url).path.strip("/").lower()
    if not path:
        return PageType.HOMEPAGE

    segments = [segment for segment in re.split(r"[/\-_.]", path) if segment]
    if any(segment in POLICY_SEGMENTS for segment in segments):
        return PageType.POLICY
    if any(segment in CATEGORY_SEGMENTS for segment in path.split("/")):
        return PageType.CATEGORY

    return PageType.OTHER


def _schema_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, dict):
        return _schema_text(value.get("name"))
    if isinstance(value, list) and value:
        return _schema_text(value[0])
    return None


def _brand_name(json_ld: list[Any]) -> str | None:
    for _, node in find_schema_nodes(json_ld, "Product"):
        brand = _schema_text(node.get("brand"))
        if brand:
            return brand
    for schema_type in ("Organization", "Brand", "WebSite"):
        for _, node in find_schema_nodes(json_ld, schema_type):
            name = _schema_text(node.get("name"))
            if name:
                return name
    return None


def _date_modified(json_ld: list[Any], headers: dict[str, str]) -> str | None:
    for schema_type in ("Product", "WebPage", "Article"):
        for _, node in find_schema_nodes(json_ld, schema_type):
            value = node.get("dateModified")
            if isinstance(value, str) and value.strip():
                return value.strip()
    return headers.get("last-modified")


def parse_date(value: str) -> datetime | None:
    """Parse an ISO 8601 or HTTP date, returning an aware datetime."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _count_marketing_terms(text: str) -> int:
    lowered = text.lower()
    return sum(lowered.count(term) for term in MARKETING_TERMS)


def derive_fields(
    page: Page,
    soup: BeautifulSoup | None,
    site_resources: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Compute the values check rules read from ``Page.fields``."""
    now = now or datetime.now(timezone.utc)
    meta = page.meta_tags
    headers = page.headers
    resources = site_resources or {}

    robots = " ".join(
        value.lower() for value in (meta.get("robots"), headers.get("x-robots-tag")) if value
    )
    directives = set(re.split(r"[,\s]+", robots))

    fields: dict[str, Any] = {
        "title": meta.get("title"),
        "meta_description": meta.get("description"),
        "canonical": meta.get("canonical"),
        "robots": meta.get("robots"),
        "indexable": page.ok and not directives & {"noindex", "none"},
        "ttfb_ms": page.ttfb_ms,
        "load_time_ms": page.load_time_ms,
        "size_bytes": page.size_bytes,
        "robots_txt": resources.get("robots_txt"),
        "sitemap_xml": resources.get("sitemap_xml"),
        "ai_feed": resources.get("ai_feed"),
    }
    for tag in OPENGRAPH_TAGS:
        fields[tag] = meta.get(tag)

    links: list[tuple[str, str]] = []
    visible_text = ""
    if soup is not None:
        fields["h1"] = [h1.get_text(" ", strip=True) for h1 in soup.find_all("h1")]
        links = extract_links(soup, page.final_url or page.url)
        body = soup.body or soup
        visible_text = body.get_text(" ", strip=True)
    else:
        fields["h1"] = []

    fields["contact_link"] = _find_link(links, CONTACT_PATTERN)
    fields["returns_link"] = _find_link(links, RETURNS_PATTERN)
    fields["shipping_link"] = _find_link(links, SHIPPING_PATTERN)

    brand = _brand_name(page.json_ld)
    fields["brand"] = brand
    if brand:
        haystack = " ".join(
            value for value in (meta.get("title"), meta.get("og:site_name"), visible_text) if value
        ).lower()
        fields["brand_consistent"] = brand.lower() in haystack
    else:
        fields["brand_consistent"] = None

    date_modified = _date_modified(page.json_ld, headers)
    fields["date_modified"] = date_modified
    parsed = parse_date(date_modified) if date_modified else None
    fields["days_since_modified"] = max((now - parsed).days, 0) if parsed else None

    description = None
    for _, node in find_schema_nodes(page.json_ld, "Product"):
        description = _schema_text(node.get("description"))
        if description:
            break
    description = description or meta.get("description")
    fields["marketing_term_count"] = _count_marketing_terms(description) if description else None

    fields["ai_licensing"] = (
        any(meta.get(name) for name in LICENSE_META_NAMES) or bool(resources.get("ai_feed_license"))
    )

    return fields
