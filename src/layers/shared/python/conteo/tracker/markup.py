"""Product identity extraction from e-commerce page markup.

Covers visits where no advertising pixel fires: on product pages the
product name and id are read from, in order of preference, JSON-LD
``Product`` data, Open Graph / product meta tags, a visible product title
element, and the add-to-cart form.
"""

import json
import re
from dataclasses import asdict, dataclass
from typing import Any

import structlog

logger = structlog.get_logger()

PRODUCT_PATH_PATTERN = re.compile(
    r"/(products?|items?|p|dp|shop|store|produit|produkt|producto)/[^/]+",
    re.IGNORECASE,
)

TITLE_SELECTORS = (
    "h1.product_title",
    "h1.product-title",
    ".product__title h1",
    ".product-single__title",
    "[itemprop=name]",
    "h1",
)

CART_FORM_SELECTORS = (
    'form[action*="/cart/add"]',
    "form.cart",
    "form[data-product-id]",
)

PRODUCT_ID_INPUTS = ("product_id", "product-id", "add-to-cart", "id")

MAX_FIELD_LENGTH = 500


@dataclass(frozen=True)
class ProductInfo:
    """Product identity observed on a page or in a pixel payload."""

    name: str | None = None
    id: str | None = None
    page: str | None = None

    def __bool__(self) -> bool:
        return bool(self.name or self.id)

    def to_dict(self) -> dict[str, str]:
        return {k: v for k, v in asdict(self).items() if v}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProductInfo":
        return cls(
            name=clean_text(data.get("name")),
            id=clean_text(data.get("id")),
            page=clean_text(data.get("page")),
        )

    def backfill(self, other: "ProductInfo | None") -> "ProductInfo":
        """Fill missing fields from another product."""
        if not other:
            return self
        return ProductInfo(
            name=self.name or other.name,
            id=self.id or other.id,
            page=self.page or other.page,
        )


def clean_text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = " ".join(str(value).split())
    return text[:MAX_FIELD_LENGTH] or None


def looks_like_product_page(path: str | None) -> bool:
    """Whether a URL path follows a common product page layout."""
    return bool(path and PRODUCT_PATH_PATTERN.search(path))


def _iter_json_ld(soup) -> list[dict]:
    items: list[dict] = []
    for script in soup.find_all("script", type="application/ld+json"):
        try:
            data = json.loads(script.string or script.get_text() or "")
        except (json.JSONDecodeError, TypeError):
            continue

        stack = [data]
        while stack:
            node = stack.pop()
            if isinstance(node, list):
                stack.extend(node)
            elif isinstance(node, dict):
                items.append(node)
                if "@graph" in node:
                    stack.append(node["@graph"])
    return items


def _is_product(node: dict) -> bool:
    node_type = node.get("@type")
    if isinstance(node_type, list):
        return "Product" in node_type
    return node_type == "Product"


def _from_json_ld(soup) -> ProductInfo:
    for node in _iter_json_ld(soup):
        if _is_product(node):
            return ProductInfo(
                name=clean_text(node.get("name")),
                id=clean_text(node.get("sku") or node.get("productID") or node.get("mpn")),
            )
    return ProductInfo()


def _meta_content(soup, *keys: str) -> str | None:
    for key in keys:
        tag = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
        if tag and tag.get("content"):
            return clean_text(tag["content"])
    return None


def _from_meta(soup) -> ProductInfo:
    og_type = _meta_content(soup, "og:type") or ""
    product_id = _meta_content(soup, "product:retailer_item_id", "product:id")
    name = _meta_content(soup, "og:title") if "product" in og_type.lower() or product_id else None
    return ProductInfo(name=name, id=product_id)


def _from_title_element(soup) -> ProductInfo:
    for selector in TITLE_SELECTORS:
        element = soup.select_one(selector)
        if element:
            name = clean_text(element.get("content") or element.get_text())
            if name:
                return ProductInfo(name=name)
    return ProductInfo()


def _from_cart_form(soup) -> ProductInfo:
    for selector in CART_FORM_SELECTORS:
        form = soup.select_one(selector)
        if not form:
            continue
        if form.get("data-product-id"):
            return ProductInfo(id=clean_text(form["data-product-id"]))
        for name in PRODUCT_ID_INPUTS:
            field = form.find(attrs={"name": name})
            if field and field.get("value"):
                return ProductInfo(id=clean_text(field["value"]))
    return ProductInfo()


def extract_product(html: str | None, path: str | None) -> ProductInfo | None:
    """Extract product identity from a product page.

    Args:
        html: Page markup.
        path: Current URL path.

    Returns:
        ProductInfo with at least a name or an id, or None when the path is
        not a product page or nothing could be found.
    """
    if not html or not looks_like_product_page(path):
        return None

    from bs4 import BeautifulSoup

    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception as e:
        logger.debug("Markup parse failed", path=path, error=str(e))
        return None

    product = ProductInfo()
    for source in (_from_json_ld, _from_meta, _from_title_element, _from_cart_form):
        product = product.backfill(source(soup))
        if product.name and product.id:
            break

    if not product:
        return None
    return ProductInfo(name=product.name, id=product.id, page=path)
