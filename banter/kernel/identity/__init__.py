"""
Identity - anonymous subject ids derived from request metadata.
"""

from banter.kernel.identity.session_identity import RequestMeta, SessionIdentity

__all__ = ["RequestMeta", "SessionIdentity"]
