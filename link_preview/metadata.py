"""Title, description, price and availability extraction from page markup."""

from __future__ import annotations

import logging
import re
from typing import NamedTuple, Optional, Tuple

from bs4 import BeautifulSoup

from .markup import Markup, as_soup, collapse, meta_content, visible_text
from .models import LinkKind, LinkMetadata, StockStatus
from .utils import host_of

logger = logging.getLogger("link_preview")

PRICE_TEXT_PATTERN = re.compile(r"([$€£¥₹])\s*(\d+[\d.,]*)")
THOUSANDS_ONLY_PATTERN = re.compile(r"[1-9]\d{0,2}(?:,\d{3})+|[1-9]\d{0,2}(?:\.\d{3})+")
AVAILABILITY_SCAN_CHARS = 4000
MIN_PARAGRAPH_CHARS = 50

PRICE_AMOUNT_KEYS = ("product:price:amount", "og:price:amount")
PRICE_CURRENCY_KEYS = ("product:price:currency", "og:price:currency")
PRODUCT_NAME_KEYS = (
    ("property", "product:title"),
    ("property", "og:title"),
    ("name", "twitter:title"),
    ("itemprop", "name"),
    ("name", "title"),
)
PRODUCT_HOST_HINTS = ("shop", "store", "product")


class Availability(NamedTuple):
    text: Optional[str]
    in_stock: StockStatus


NO_AVAILABILITY = Availability(None, StockStatus.UNKNOWN)


def extract_title(html: Markup) -> Optional[str]:
    """Return the decoded text of the first ``<title>`` element."""
    soup = as_soup(html)
    tag = soup.find("title")
    if tag is None:
        return None
    title = collapse(tag.get_text())
    return title or None


def extract_description(html: Markup) -> Optional[str]:
    """Meta description, else the first substantial paragraph."""
    soup = as_soup(html)
    description = meta_content(soup, "description", attributes=("name",))
    if description:
        return collapse(description)
    for paragraph in soup.find_all("p"):
        text = collapse(paragraph.get_text(" "))
        if len(text) > MIN_PARAGRAPH_CHARS:
            return text
    return None


def numeric_price_value(raw: str) -> Optional[float]:
    """Parse a display price, accepting both 1,299.00 and 1.299,00 styles."""
    numeric = "".join(ch for ch in raw if ch.isdigit() or ch in ".,")
    if "," in numeric and "." in numeric:
        # the rightmost separator is the decimal point
        decimal = "," if numeric.rfind(",") > numeric.rfind(".") else "."
        grouping = "." if decimal == "," else ","
        numeric = numeric.replace(grouping, "").replace(decimal, ".")
    elif THOUSANDS_ONLY_PATTERN.fullmatch(numeric):
        numeric = numeric.replace(",", "").replace(".", "")
    else:
        numeric = numeric.replace(",", ".")
    try:
        return float(numeric)
    except ValueError:
        return None


def sanitize_price(raw: Optional[str]) -> Optional[str]:
    """Drop empty and placeholder prices (numeric value of 1.0 or less)."""
    if raw is None:
        return None
    price = raw.strip()
    if not price:
        return None
    value = numeric_price_value(price)
    if value is not None and value <= 1.0:
        logger.warning("Discarding placeholder price value '%s'", raw)
        return None
    return price


def extract_price(html: Markup) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(price, currency)``; structured meta wins over a text scan."""
    soup = as_soup(html)
    price = next(filter(None, (meta_content(soup, key) for key in PRICE_AMOUNT_KEYS)), None)
    currency = next(
        filter(None, (meta_content(soup, key) for key in PRICE_CURRENCY_KEYS)), None
    )

    if price is None:
        match = PRICE_TEXT_PATTERN.search(visible_text(soup))
        if match:
            currency = currency or match.group(1)
            price = match.group(2).rstrip(".,")

    return sanitize_price(price), currency.strip() if currency else None


def normalize_availability(raw: str) -> Availability:
    text = raw.strip()
    compact = re.sub(r"[\s_\-]+", "", text.lower())
    if not compact:
        return NO_AVAILABILITY
    if "outofstock" in compact or "soldout" in compact:
        return Availability("Out of stock", StockStatus.OUT_OF_STOCK)
    if "instock" in compact:
        return Availability("In stock", StockStatus.IN_STOCK)
    if "preorder" in compact:
        return Availability("Pre-order", StockStatus.UNKNOWN)
    if "limited" in compact:
        return Availability("Limited", StockStatus.UNKNOWN)
    return Availability(text, StockStatus.UNKNOWN)


def _structured_availability(soup) -> Optional[str]:
    value = meta_content(soup, "availability")
    if value:
        return value
    for link in soup.find_all("link"):
        for attribute in ("itemprop", "property", "name"):
            key = link.get(attribute)
            if isinstance(key, str) and key.strip().lower() == "availability":
                href = link.get("href")
                if isinstance(href, str) and href.strip():
                    return href
    return None


def extract_availability(html: Markup) -> Availability:
    """Structured availability if declared, else a keyword scan near the top."""
    return _availability(as_soup(html), str(html))


def _availability(soup, raw_html: str) -> Availability:
    raw = _structured_availability(soup)
    if raw is not None:
        normalized = normalize_availability(raw)
        if normalized.text is not None:
            return normalized

    snippet = raw_html[:AVAILABILITY_SCAN_CHARS].lower()
    if "sold out" in snippet or "out of stock" in snippet:
        return Availability("Out of stock", StockStatus.OUT_OF_STOCK)
    if "pre-order" in snippet or "preorder" in snippet:
        return Availability("Pre-order", StockStatus.UNKNOWN)
    if "in stock" in snippet or "available now" in snippet:
        return Availability("In stock", StockStatus.IN_STOCK)
    return NO_AVAILABILITY


def is_product_like(
    html: Markup,
    base_url: str,
    has_price: bool = False,
    availability: Optional[str] = None,
) -> bool:
    if has_price or availability is not None:
        return True
    return _product_signals(as_soup(html), str(html), base_url)


def _product_signals(soup: BeautifulSoup, raw_html: str, base_url: str) -> bool:
    og_type = meta_content(soup, "og:type")
    if og_type and og_type.lower().startswith("product"):
        return True
    lower = raw_html.lower()
    if "schema.org/product" in lower or "product:price" in lower:
        return True
    host = host_of(base_url)
    return any(hint in host for hint in PRODUCT_HOST_HINTS)


def extract_product_name(html: Markup) -> Optional[str]:
    soup = as_soup(html)
    for attribute, key in PRODUCT_NAME_KEYS:
        value = meta_content(soup, key, attributes=(attribute,))
        if value:
            return collapse(value)
    heading = soup.find("h1")
    if heading is not None:
        text = collapse(heading.get_text(" "))
        if text:
            return text
    return extract_title(soup)


def extract_link_metadata(
    html: str,
    base_url: str,
    soup: Optional[BeautifulSoup] = None,
) -> LinkMetadata:
    """Classify the page and collect product signals; never raises on bad markup.

    ``soup`` may be passed when the caller has already parsed ``html``.
    """
    soup = soup if soup is not None else as_soup(html)
    price, currency = extract_price(soup)
    availability = _availability(soup, html)

    metadata = LinkMetadata(
        product_name=extract_product_name(soup),
        price=price,
        currency=currency,
        availability=availability.text,
        in_stock=availability.in_stock,
    )
    if price is not None or availability.text is not None or _product_signals(
        soup, html, base_url
    ):
        metadata.kind = LinkKind.PRODUCT
    return metadata
