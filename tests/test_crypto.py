"""Tests for certificate helpers."""

from __future__ import annotations

import hashlib
import ssl

import pytest

from nvremote import crypto


def test_hex_round_trip():
    assert crypto.cert_from_hex(crypto.cert_to_hex(b"\x00\x01\xfe\xff")) == b"\x00\x01\xfe\xff"
    assert crypto.cert_to_hex(b"\xab\xcd") == "abcd"


@pytest.mark.parametrize("bad", ["", "0", "zz", "ab cd", " abcd", None])
def test_cert_from_hex_is_strict(bad):
    with pytest.raises(ValueError):
        crypto.cert_from_hex(bad)


def test_sha256_digest_format():
    digest = crypto.sha256_digest(b"abc")
    assert digest.replace(":", "") == hashlib.sha256(b"abc").hexdigest().upper()
    assert len(digest.split(":")) == 32


def test_describe_self_signed(relay_cert):
    der, _ = relay_cert
    info = crypto.describe_certificate(der)
    assert info["subject"] == "CN=127.0.0.1"
    assert info["issuer"] == info["subject"]
    assert info["sha256"] == crypto.sha256_digest(der)


def test_describe_rejects_garbage():
    with pytest.raises(ValueError):
        crypto.describe_certificate(b"definitely not DER")


def test_generated_certs_differ():
    first, _ = crypto.generate_self_signed("relay.example")
    second, _ = crypto.generate_self_signed("relay.example")
    assert first != second


def test_der_to_pem(relay_cert):
    der, _ = relay_cert
    pem = crypto.der_to_pem(der)
    assert pem.startswith(b"-----BEGIN CERTIFICATE-----")
    assert ssl.PEM_cert_to_DER_cert(pem.decode("ascii")) == der


def test_client_context_leaves_trust_to_pinning():
    ctx = crypto.client_tls_context()
    assert ctx.verify_mode == ssl.CERT_NONE
    assert ctx.check_hostname is False
