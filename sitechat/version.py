"""Version information for SiteChat."""

__version__ = "0.1.0"
