"""Tests for the pin check."""

from __future__ import annotations

import logging

import pytest

from nvremote.errors import CacheDecodeError, TransportError, TrustMismatch, TrustRejected
from nvremote.fingerprints import FingerprintStore
from nvremote.trust import TrustVerifier

CERT = b"\x30\x82\x01\x0a-certificate-bytes"
OTHER = b"\x30\x82\x01\x0a-different-bytes"


def make_verifier(**pins: bytes) -> TrustVerifier:
    store = FingerprintStore()
    for host, cert in pins.items():
        store.add(host.replace("_", "."), cert)
    return TrustVerifier(store)


def test_unknown_host_is_rejected_with_certificate():
    verifier = make_verifier()
    with pytest.raises(TrustRejected) as info:
        verifier.verify("relay.example", CERT)
    assert info.value.host == "relay.example"
    assert info.value.certificate == CERT
    assert info.value.fingerprint_hex == CERT.hex()


def test_rejection_never_pins():
    verifier = make_verifier()
    with pytest.raises(TrustRejected):
        verifier.verify("relay.example", CERT)
    assert not verifier.store.contains("relay.example")


def test_matching_pin_is_accepted():
    verifier = make_verifier(relay_example=CERT)
    assert verifier.verify("relay.example", CERT) == CERT


def test_different_bytes_is_mismatch():
    verifier = make_verifier(relay_example=CERT)
    with pytest.raises(TrustMismatch) as info:
        verifier.verify("relay.example", OTHER)
    assert info.value.host == "relay.example"


def test_pin_for_other_host_does_not_authorize():
    verifier = make_verifier(relay_example=CERT, other_example=OTHER)
    with pytest.raises(TrustMismatch):
        verifier.verify("relay.example", OTHER)


@pytest.mark.parametrize("presented", [None, b""])
def test_no_certificate_is_protocol_violation(presented):
    verifier = make_verifier(relay_example=CERT)
    with pytest.raises(TransportError):
        verifier.verify("relay.example", presented)


def test_corrupted_pin_surfaces_decode_error():
    verifier = TrustVerifier(FingerprintStore({"relay.example": "not-hex"}))
    with pytest.raises(CacheDecodeError):
        verifier.verify("relay.example", CERT)


def test_insecure_bypass_accepts_anything_and_warns(caplog):
    verifier = TrustVerifier(FingerprintStore(), insecure_skip_verify=True)
    with caplog.at_level(logging.WARNING, logger="nvremote.trust"):
        assert verifier.verify("relay.example", CERT) == CERT
    assert "INSECURE" in caplog.text


def test_insecure_bypass_still_requires_a_certificate():
    verifier = TrustVerifier(FingerprintStore(), insecure_skip_verify=True)
    with pytest.raises(TransportError):
        verifier.verify("relay.example", None)
