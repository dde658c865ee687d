"""Staybook: transactional account and role data layer for a rental-listing backend."""

__version__ = "0.1.0"
