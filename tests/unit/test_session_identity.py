"""Unit tests for anonymous subject id derivation."""

import hashlib

from banter.kernel.identity.session_identity import RequestMeta, SessionIdentity


class TestClientIp:
    """Address resolution order."""

    def test_prefers_first_forwarded_address(self):
        meta = RequestMeta(client_host="10.0.0.1", forwarded_for="203.0.113.5, 10.0.0.2")
        assert SessionIdentity.client_ip(meta) == "203.0.113.5"

    def test_falls_back_to_peer_then_localhost(self):
        assert SessionIdentity.client_ip(RequestMeta(client_host="10.0.0.1")) == "10.0.0.1"
        assert SessionIdentity.client_ip(RequestMeta()) == "127.0.0.1"

    def test_strips_ipv4_mapped_prefix(self):
        assert SessionIdentity.client_ip(RequestMeta(client_host="::ffff:192.168.1.9")) == "192.168.1.9"


class TestSubjectId:
    """Fingerprint and subject hashing."""

    def test_fingerprint_is_md5_of_ordered_components(self):
        meta = RequestMeta(
            client_host="1.2.3.4",
            user_agent="UA",
            accept_language="en",
            accept_encoding="gzip",
            accept="*/*",
        )
        expected = hashlib.md5(b"UA|en|gzip|1.2.3.4|*/*").hexdigest()
        assert SessionIdentity.device_fingerprint(meta) == expected

    def test_subject_id_format(self):
        expected = hashlib.sha256(b"1.2.3.4_abc").hexdigest()[:16]
        assert SessionIdentity.subject_id("1.2.3.4", "abc") == expected

    def test_missing_fingerprint_uses_unknown(self):
        expected = hashlib.sha256(b"1.2.3.4_unknown").hexdigest()[:16]
        assert SessionIdentity.subject_id("1.2.3.4", None) == expected

    def test_resolve_is_stable_and_device_sensitive(self):
        a = RequestMeta(client_host="1.2.3.4", user_agent="Firefox")
        b = RequestMeta(client_host="1.2.3.4", user_agent="Chrome")
        assert SessionIdentity.resolve(a) == SessionIdentity.resolve(a)
        assert SessionIdentity.resolve(a) != SessionIdentity.resolve(b)
        assert len(SessionIdentity.resolve(a)) == 16

    def test_from_headers(self):
        meta = RequestMeta.from_headers(
            {"user-agent": "UA", "x-forwarded-for": "5.6.7.8", "accept": "text/html"},
            client_host="9.9.9.9",
        )
        assert meta.user_agent == "UA"
        assert meta.accept == "text/html"
        assert SessionIdentity.client_ip(meta) == "5.6.7.8"
