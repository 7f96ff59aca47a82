"""wmsync: data-refresh and offline-sync core for warehouse mobile operations."""

__version__ = "0.3.0"
