"""Validation of incoming scan requests."""

from urllib.parse import urlparse

from .config import settings
from .errors import ValidationError
from .models import ScanMode, ScanRequest


def normalize_domain(value: str) -> str | None:
    """Reduce user input to a bare host name.

    Strips the scheme, a leading ``www.``, any path and port, and lowercases
    the result. Returns None when what remains is not a dotted host with
    non-empty labels.
    """
    if not value:
        return None

    domain = value.strip().lower()

    for prefix in ("http://", "https://"):
        if domain.startswith(prefix):
            domain = domain[len(prefix):]
            break

    if domain.startswith("www."):
        domain = domain[4:]

    domain = domain.split("/")[0]
    domain = domain.split(":")[0]

    if not domain or "." not in domain or not all(domain.split(".")):
        return None

    return domain


def is_absolute_url(url: str) -> bool:
    """Check that a URL is an absolute http(s) URL with a host."""
    try:
        parsed = urlparse(url.strip())
    except (AttributeError, ValueError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def parse_mode(mode: ScanMode | str | None) -> ScanMode:
    """Resolve a mode value, defaulting to quick."""
    if mode is None:
        return ScanMode.QUICK
    if isinstance(mode, ScanMode):
        return mode
    try:
        return ScanMode(str(mode).lower())
    except ValueError:
        allowed = ", ".join(m.value for m in ScanMode)
        raise ValidationError(f"Invalid mode '{mode}', expected one of: {allowed}") from None


def validate_scan_request(
    request: ScanRequest,
    max_seed_urls: int | None = None,
) -> tuple[str, list[str], ScanMode]:
    """Validate a scan request.

    Returns:
        Tuple of (normalized domain, cleaned seed URLs, mode).

    Raises:
        ValidationError: If the domain, seed URLs or mode are unacceptable.
    """
    max_seed_urls = max_seed_urls or settings.max_seed_urls

    domain = normalize_domain(request.domain)
    if not domain:
        raise ValidationError("Invalid domain")

    not_strings = [url for url in (request.seed_urls or []) if not isinstance(url, str)]
    if not_strings:
        raise ValidationError(f"Invalid URL: {not_strings[0]!r}")

    seed_urls = [url.strip() for url in (request.seed_urls or [])]
    if not seed_urls:
        raise ValidationError("at least one URL required")

    if len(seed_urls) > max_seed_urls:
        raise ValidationError(f"At most {max_seed_urls} URLs allowed, got {len(seed_urls)}")

    invalid = [url for url in seed_urls if not is_absolute_url(url)]
    if invalid:
        raise ValidationError(f"Invalid URL: {invalid[0]}")

    mode = parse_mode(request.mode)

    return domain, seed_urls, mode
