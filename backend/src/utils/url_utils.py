"""Website URL and domain helpers used for project settings and widget checks."""

from urllib.parse import urlsplit


def normalize_website_url(url: str) -> str:
    """Validate a website URL, prepending ``https://`` when no scheme is given.

    Raises:
        ValueError: If the URL has no host or a non-http(s) scheme
    """
    url = url.strip()
    if "://" not in url:
        url = f"https://{url}"

    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise ValueError("Invalid website URL format")
    if " " in parts.netloc:
        raise ValueError("Invalid website URL format")
    return url


def hostname_of(url: str | None) -> str | None:
    """Hostname of a stored website URL, or None if it cannot be parsed."""
    if not url:
        return None
    if "://" not in url:
        url = f"https://{url}"
    try:
        return urlsplit(url).hostname
    except ValueError:
        return None


def normalize_domain(domain: str) -> str:
    """Reduce a requesting domain to a bare host.

    Strips the scheme, any path, query or fragment, and a port. Case is
    preserved; the comparison against the project host is case-sensitive.
    """
    domain = domain.strip()
    if "://" in domain:
        domain = domain.split("://", 1)[1]
    for separator in ("/", "?", "#"):
        domain = domain.split(separator, 1)[0]
    if "@" in domain:
        domain = domain.rsplit("@", 1)[1]
    if ":" in domain:
        domain = domain.split(":", 1)[0]
    return domain
