"""URL normalization and domain guardrails for navigation."""

from urllib.parse import urlparse
from typing import Optional

from ..core.exceptions import DomainNotAllowedError


def normalize_url(url: str) -> str:
    """
    Turn user input into an absolute URL.

    A bare host such as ``example.com`` gets an ``http://`` prefix.

    Raises:
        ValueError: If the input cannot be made into a URL
    """
    candidate = (url or "").strip()
    if not candidate:
        raise ValueError("URL parameter is required for navigation.")

    parsed = urlparse(candidate)
    if parsed.scheme and (parsed.netloc or parsed.scheme in ("about", "data", "file")):
        return candidate

    parsed = urlparse(f"http://{candidate}")
    host = parsed.hostname or ""
    if not host or " " in candidate:
        raise ValueError(
            f"Invalid URL format: '{url}'. Please provide a valid URL "
            "(e.g., 'https://example.com' or 'example.com')."
        )
    return parsed.geturl()


def validate_domain(url: str, allowed_domains: list[str]) -> bool:
    """
    Check if a URL's domain is in the allowed list.

    Notes:
        - If allowed_domains is empty, all domains are allowed
        - Supports exact match and subdomain matching
        - Domain matching is case-insensitive
    """
    if not allowed_domains:
        return True

    domain = extract_domain(url)
    if domain is None:
        return False

    for allowed in allowed_domains:
        allowed = allowed.lower().strip()
        if not allowed:
            continue

        # Exact match
        if domain == allowed:
            return True

        # Subdomain match (e.g., "example.com" allows "sub.example.com")
        if domain.endswith(f".{allowed}"):
            return True

    return False


def extract_domain(url: str) -> Optional[str]:
    """Extract the lower-cased domain (without port) from a URL."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    domain = parsed.netloc.lower()
    if ":" in domain:
        domain = domain.split(":")[0]
    return domain if domain else None


def check_navigation_allowed(url: str, allowed_domains: list[str]) -> None:
    """
    Raises:
        DomainNotAllowedError: If the URL's domain is outside the allow-list
    """
    if allowed_domains and not validate_domain(url, allowed_domains):
        raise DomainNotAllowedError(extract_domain(url) or url, allowed_domains)
