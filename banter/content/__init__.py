"""
Static practice content.
"""

from banter.content.catalog import DEFAULT_CHARACTER_ID, ContentCatalog

__all__ = ["DEFAULT_CHARACTER_ID", "ContentCatalog"]
