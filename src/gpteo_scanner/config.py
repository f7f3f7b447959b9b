"""Configuration settings for the scan pipeline."""

from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Fetcher settings
    user_agent: str = Field(default="GPTeo-Scanner/1.0", description="User agent sent with every request")
    max_redirects: int = Field(default=5, description="Maximum redirect hops per fetch")
    quick_timeout: float = Field(default=10.0, description="Per-page timeout in seconds for quick scans")
    standard_timeout: float = Field(default=20.0, description="Per-page timeout in seconds for standard scans")
    deep_timeout: float = Field(default=30.0, description="Per-page timeout in seconds for deep scans")
    probe_site_resources: bool = Field(
        default=True,
        description="Fetch robots.txt, sitemap.xml and ai-feed.json for homepage pages",
    )
    store_html_snapshot: bool = Field(default=False, description="Keep raw HTML on recorded pages")

    # Page budget per scan mode
    quick_max_pages: int = Field(default=3, description="Pages processed by a quick scan")
    standard_max_pages: int = Field(default=10, description="Pages processed by a standard scan")
    deep_max_pages: int = Field(default=25, description="Pages processed by a deep scan")
    max_seed_urls: int = Field(default=10, description="Maximum seed URLs accepted per scan")

    # Concurrency
    queue_concurrency: int = Field(default=1, description="Scans executing at the same time")
    page_concurrency: int = Field(default=3, description="Concurrent page fetches within one scan")

    # Playwright/Browser settings
    render_javascript: bool = Field(
        default=False,
        description="Re-render successfully fetched pages in a headless browser",
    )
    page_load_timeout: int = Field(
        default=30000,
        description="Page load timeout in milliseconds",
    )
    js_wait_timeout: int = Field(
        default=1000,
        description="Additional wait time for JavaScript rendering (ms)",
    )

    # Scoring
    critical_issue_limit: int = Field(default=5, description="Critical issues kept in a scan summary")
    checks_version: str = Field(default="1.0.0", description="Version of the built-in checks registry")

    # Storage settings
    reports_dir: Path = Field(default=Path("./reports"), description="Reports directory")

    model_config = {"env_prefix": "GPTEO_", "env_file": ".env"}


settings = Settings()
