"""Baseline SEO and GPTeo checks."""

from ..models import CheckCategory, PageType, Severity
from .registry import Check, CheckRegistry
from .rules import LengthRangeRule, PresenceRule, StructuredFieldRule, ThresholdRule

SEO = CheckCategory.SEO
GPTEO = CheckCategory.GPTEO

HOMEPAGE = PageType.HOMEPAGE
PRODUCT = PageType.PRODUCT
CATEGORY = PageType.CATEGORY

CONTENT_PAGES = frozenset({HOMEPAGE, PRODUCT, CATEGORY})

PRODUCT_SCHEMA_FIX = """<script type="application/ld+json">
{
  "@context": "https://schema.org",
  "@type": "Product",
  "name": "Product Name",
  "description": "Detailed product description",
  "image": ["https://example.com/image.jpg"],
  "sku": "SKU-123",
  "brand": {
    "@type": "Brand",
    "name": "Brand Name"
  }
}
</script>"""

OFFER_FIX = """"offers": {
  "@type": "Offer",
  "price": "29.99",
  "priceCurrency": "USD",
  "availability": "https://schema.org/InStock",
  "url": "https://example.com/product"
}"""

AI_FEED_FIX = """Create /ai-feed.json with:
{
  "brand": "Your Brand",
  "updated_at": "2025-10-02T12:00:00Z",
  "products": [...]
}"""


BUILTIN_CHECKS: tuple[Check, ...] = (
    # Meta & title
    Check(
        key="seo.meta.title",
        name="Title Tag Present",
        description="Page has a <title> tag with appropriate length (30-60 chars)",
        category=SEO,
        severity=Severity.CRITICAL,
        weight=15,
        page_types=CONTENT_PAGES,
        rule=LengthRangeRule(field="title", min_length=30, max_length=60),
        fix_template="Add a descriptive <title> tag: <title>Your Page Title - Brand</title>",
    ),
    Check(
        key="seo.meta.description",
        name="Meta Description Present",
        description="Page has a meta description tag with appropriate length (120-160 chars)",
        category=SEO,
        severity=Severity.HIGH,
        weight=10,
        page_types=CONTENT_PAGES,
        rule=LengthRangeRule(field="meta_description", min_length=120, max_length=160),
        fix_template='<meta name="description" content="Your compelling page description">',
    ),
    Check(
        key="seo.meta.canonical",
        name="Canonical URL Set",
        description="Page has a canonical URL tag to prevent duplicate content issues",
        category=SEO,
        severity=Severity.HIGH,
        weight=10,
        page_types=CONTENT_PAGES,
        rule=PresenceRule(fields=("canonical",), label="Canonical URL"),
        fix_template='<link rel="canonical" href="https://yourdomain.com/page-url">',
    ),
    # Indexability & crawlability
    Check(
        key="seo.robots.indexable",
        name="Page Indexable",
        description="Page is not blocked by robots meta tag or noindex directive",
        category=SEO,
        severity=Severity.CRITICAL,
        weight=15,
        page_types=CONTENT_PAGES,
        rule=PresenceRule(fields=("indexable",), label="Indexable page"),
        fix_template='Remove noindex directive or update robots meta: <meta name="robots" content="index, follow">',
    ),
    Check(
        key="seo.robots.txt",
        name="Robots.txt Present",
        description="Site has a valid robots.txt file",
        category=SEO,
        severity=Severity.MEDIUM,
        weight=5,
        page_types=frozenset({HOMEPAGE}),
        rule=PresenceRule(fields=("robots_txt",), label="robots.txt"),
    ),
    Check(
        key="seo.sitemap.xml",
        name="XML Sitemap Present",
        description="Site has an XML sitemap for search engines",
        category=SEO,
        severity=Severity.HIGH,
        weight=10,
        page_types=frozenset({HOMEPAGE}),
        rule=PresenceRule(fields=("sitemap_xml",), label="XML sitemap"),
    ),
    # Content & structure
    Check(
        key="seo.content.h1",
        name="H1 Tag Present",
        description="Page has exactly one H1 heading tag",
        category=SEO,
        severity=Severity.MEDIUM,
        weight=5,
        page_types=CONTENT_PAGES,
        rule=LengthRangeRule(field="h1", min_length=1, max_length=1, unit="headings"),
        fix_template="<h1>Your Main Page Heading</h1>",
    ),
    # Social & OpenGraph
    Check(
        key="seo.opengraph.present",
        name="OpenGraph Tags Present",
        description="Page has OpenGraph meta tags for social sharing",
        category=SEO,
        severity=Severity.LOW,
        weight=5,
        rule=PresenceRule(fields=("og:title", "og:description", "og:image"), label="OpenGraph tags"),
        fix_template=(
            '<meta property="og:title" content="Your Title">\n'
            '<meta property="og:description" content="Your description">\n'
            '<meta property="og:image" content="https://yourdomain.com/image.jpg">'
        ),
    ),
    # Performance heuristics
    Check(
        key="seo.performance.ttfb",
        name="Time to First Byte",
        description="Response headers arrive quickly, redirects included (TTFB < 600ms)",
        category=SEO,
        severity=Severity.MEDIUM,
        weight=10,
        rule=ThresholdRule(field="ttfb_ms", good=200, fair=600, unit="ms"),
    ),
    Check(
        key="seo.performance.page_size",
        name="Page Size Reasonable",
        description="Page size is under 2MB for good load performance",
        category=SEO,
        severity=Severity.LOW,
        weight=5,
        rule=ThresholdRule(field="size_bytes", good=2097152, fair=2097152, unit=" bytes"),
    ),
    # Product schema
    Check(
        key="gpteo.schema.product.present",
        name="Product Schema Present",
        description="Page has valid JSON-LD Product schema with @type: Product",
        category=GPTEO,
        severity=Severity.CRITICAL,
        weight=30,
        page_types=frozenset({PRODUCT}),
        rule=StructuredFieldRule(schema_type="Product", required_fields=("@type", "name", "description", "image")),
        docs_url="https://schema.org/Product",
        fix_template=PRODUCT_SCHEMA_FIX,
    ),
    Check(
        key="gpteo.schema.product.complete",
        name="Product Schema Complete",
        description="Product schema includes recommended fields: name, sku, brand, image, description",
        category=GPTEO,
        severity=Severity.HIGH,
        weight=15,
        page_types=frozenset({PRODUCT}),
        rule=StructuredFieldRule(
            schema_type="Product",
            required_fields=("name", "sku", "brand", "image", "description"),
        ),
        docs_url="https://schema.org/Product",
    ),
    Check(
        key="gpteo.schema.offer.present",
        name="Offer Schema Present",
        description="Product has Offer schema with price, currency, availability",
        category=GPTEO,
        severity=Severity.CRITICAL,
        weight=15,
        page_types=frozenset({PRODUCT}),
        rule=StructuredFieldRule(
            schema_type="Product",
            path=("offers",),
            required_fields=("@type", "price", "priceCurrency", "availability", "url"),
        ),
        docs_url="https://schema.org/Offer",
        fix_template=OFFER_FIX,
    ),
    # Identifiers
    Check(
        key="gpteo.identifiers.present",
        name="Product Identifiers Present",
        description="Product has unique identifiers (GTIN, UPC, EAN, or SKU)",
        category=GPTEO,
        severity=Severity.HIGH,
        weight=10,
        page_types=frozenset({PRODUCT}),
        rule=StructuredFieldRule(
            schema_type="Product",
            required_fields=("gtin13", "gtin14", "gtin8", "upc", "sku"),
            minimum=1,
        ),
        fix_template='Add to Product schema: "gtin13": "1234567890123" or "sku": "PRODUCT-SKU"',
    ),
    # Provenance & trust
    Check(
        key="gpteo.provenance.contact",
        name="Contact Information Visible",
        description="Site has accessible contact or about page showing brand ownership",
        category=GPTEO,
        severity=Severity.MEDIUM,
        weight=5,
        page_types=frozenset({HOMEPAGE}),
        rule=PresenceRule(fields=("contact_link",), label="Contact or about link"),
    ),
    Check(
        key="gpteo.provenance.brand",
        name="Brand Consistency",
        description="Brand name is consistent across schema and visible content",
        category=GPTEO,
        severity=Severity.MEDIUM,
        weight=5,
        page_types=frozenset({PRODUCT, HOMEPAGE}),
        rule=PresenceRule(fields=("brand_consistent",), label="Consistent brand name"),
    ),
    # Policy transparency
    Check(
        key="gpteo.policies.returns",
        name="Return Policy Linked",
        description="Returns/refund policy page is linked and accessible",
        category=GPTEO,
        severity=Severity.HIGH,
        weight=10,
        page_types=frozenset({PRODUCT, HOMEPAGE}),
        rule=PresenceRule(fields=("returns_link",), label="Returns policy link"),
    ),
    Check(
        key="gpteo.policies.shipping",
        name="Shipping Policy Linked",
        description="Shipping policy page is linked and accessible",
        category=GPTEO,
        severity=Severity.MEDIUM,
        weight=5,
        page_types=frozenset({PRODUCT, HOMEPAGE}),
        rule=PresenceRule(fields=("shipping_link",), label="Shipping policy link"),
    ),
    # Freshness signals
    Check(
        key="gpteo.freshness.date_modified",
        name="Last Modified Date Present",
        description="Product has dateModified in schema or Last-Modified header",
        category=GPTEO,
        severity=Severity.HIGH,
        weight=10,
        page_types=frozenset({PRODUCT}),
        rule=PresenceRule(fields=("date_modified",), label="Last modified date"),
        fix_template='Add to Product schema: "dateModified": "2025-10-02T12:00:00Z"',
    ),
    Check(
        key="gpteo.freshness.recent",
        name="Content Recently Updated",
        description="Product data has been updated within the last 90 days",
        category=GPTEO,
        severity=Severity.MEDIUM,
        weight=5,
        page_types=frozenset({PRODUCT}),
        rule=ThresholdRule(field="days_since_modified", good=90, fair=90, unit=" days"),
    ),
    # AI feed & accessibility
    Check(
        key="gpteo.feed.present",
        name="AI Feed Available",
        description="Site provides machine-readable feed at /ai-feed.json or similar",
        category=GPTEO,
        severity=Severity.MEDIUM,
        weight=10,
        page_types=frozenset({HOMEPAGE}),
        rule=PresenceRule(fields=("ai_feed",), label="AI feed"),
        fix_template=AI_FEED_FIX,
    ),
    Check(
        key="gpteo.licensing.present",
        name="AI Licensing Terms Present",
        description="Site has explicit licensing/usage terms for AI assistants",
        category=GPTEO,
        severity=Severity.LOW,
        weight=5,
        page_types=frozenset({HOMEPAGE}),
        rule=PresenceRule(fields=("ai_licensing",), label="AI licensing terms"),
        fix_template='Add licensing statement: "Data provided for use in AI assistants; attribution requested."',
    ),
    # Content quality
    Check(
        key="gpteo.content.attributes",
        name="Structured Attributes Present",
        description="Product description includes factual attributes (materials, dimensions, specs)",
        category=GPTEO,
        severity=Severity.MEDIUM,
        weight=10,
        page_types=frozenset({PRODUCT}),
        rule=StructuredFieldRule(
            schema_type="Product",
            required_fields=(
                "material", "color", "size", "weight", "width", "height", "depth", "additionalProperty",
            ),
            minimum=2,
        ),
    ),
    Check(
        key="gpteo.content.factual",
        name="Fact-First Description Style",
        description="Product description prioritizes facts over marketing language",
        category=GPTEO,
        severity=Severity.LOW,
        weight=5,
        page_types=frozenset({PRODUCT}),
        rule=ThresholdRule(field="marketing_term_count", good=0, fair=2, unit=" terms"),
    ),
)


def default_registry() -> CheckRegistry:
    """Build a registry holding the baseline checks."""
    return CheckRegistry(BUILTIN_CHECKS)
