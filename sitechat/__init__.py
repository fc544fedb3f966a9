"""SiteChat - website knowledge ingestion and chat widget backend."""

from sitechat.version import __version__

__all__ = ["__version__"]
