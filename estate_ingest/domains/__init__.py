"""Registry of target domains (sales, assets)."""

from .assets import ASSETS
from .base import IngestDomain
from .sales import SALES

__all__ = [
    "ASSETS",
    "DOMAINS",
    "SALES",
    "IngestDomain",
    "get_domain",
]

DOMAINS: dict[str, IngestDomain] = {
    SALES.name: SALES,
    ASSETS.name: ASSETS,
}


def get_domain(name: str) -> IngestDomain:
    try:
        return DOMAINS[name]
    except KeyError:
        raise ValueError(f"unknown domain '{name}' (expected one of: {', '.join(DOMAINS)})") from None
