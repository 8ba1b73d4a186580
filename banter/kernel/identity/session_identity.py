"""
Session identity: a stable pseudo-identity for anonymous callers.

The subject id partitions conversations and rate limits. It is derived from
the client address and a device fingerprint; it is not an authentication
mechanism and collisions are tolerated.
"""

import hashlib
from dataclasses import dataclass
from typing import Optional

DEFAULT_CLIENT_IP = "127.0.0.1"
SUBJECT_ID_LENGTH = 16


@dataclass(frozen=True)
class RequestMeta:
    """Request attributes the identity is derived from."""

    client_host: Optional[str] = None
    forwarded_for: Optional[str] = None
    user_agent: str = ""
    accept_language: str = ""
    accept_encoding: str = ""
    accept: str = ""

    @classmethod
    def from_headers(cls, headers, client_host: Optional[str] = None) -> "RequestMeta":
        """Build from any case-insensitive header mapping (e.g. Starlette Headers)."""
        return cls(
            client_host=client_host,
            forwarded_for=headers.get("x-forwarded-for"),
            user_agent=headers.get("user-agent") or "",
            accept_language=headers.get("accept-language") or "",
            accept_encoding=headers.get("accept-encoding") or "",
            accept=headers.get("accept") or "",
        )


class SessionIdentity:
    """Derives subject ids from request metadata."""

    @staticmethod
    def client_ip(meta: RequestMeta) -> str:
        """Get client IP (X-Forwarded-For first, then socket peer)."""
        ip = None
        if meta.forwarded_for:
            ip = meta.forwarded_for.split(",")[0].strip() or None
        if not ip:
            ip = meta.client_host or DEFAULT_CLIENT_IP
        return ip.replace("::ffff:", "")

    @staticmethod
    def device_fingerprint(meta: RequestMeta, ip: Optional[str] = None) -> str:
        """md5 over a fixed, ordered set of request attributes."""
        if ip is None:
            ip = SessionIdentity.client_ip(meta)
        components = [
            meta.user_agent,
            meta.accept_language,
            meta.accept_encoding,
            ip,
            meta.accept,
        ]
        return hashlib.md5("|".join(components).encode("utf-8")).hexdigest()

    @staticmethod
    def subject_id(ip: str, fingerprint: Optional[str]) -> str:
        combined = f"{ip}_{fingerprint or 'unknown'}"
        return hashlib.sha256(combined.encode("utf-8")).hexdigest()[:SUBJECT_ID_LENGTH]

    @classmethod
    def resolve(cls, meta: RequestMeta) -> str:
        """Map request metadata to a subject id. Same input, same id."""
        ip = cls.client_ip(meta)
        fingerprint = cls.device_fingerprint(meta, ip)
        return cls.subject_id(ip, fingerprint)
