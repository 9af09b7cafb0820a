"""Git helpers: cache checkouts and history inspection."""

from .checkout import CheckoutManager, latest_version_tag, parse_version_tag
from .history import Contributor, GitHistory

__all__ = [
    "CheckoutManager",
    "Contributor",
    "GitHistory",
    "latest_version_tag",
    "parse_version_tag",
]
