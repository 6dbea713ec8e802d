from __future__ import annotations

from token_indexer.app.domain.sanitize import clear_null_bytes, sanitize_call_result, sanitize_uri


def test_null_bytes_are_removed():
    assert sanitize_call_result("My\u0000Token") == "MyToken"
    assert clear_null_bytes("a\x00b\x00") == "ab"
    assert clear_null_bytes(None) is None


def test_malformed_sentinel_becomes_none():
    assert sanitize_call_result("0006648936.1ec7") is None
    assert sanitize_call_result("0006648936.1ec7x") == "0006648936.1ec7x"


def test_bytes32_results_are_decoded():
    raw = b"MKR" + b"\x00" * 29
    assert sanitize_call_result(raw) == "MKR"
    assert sanitize_call_result(b"\xff\xfe" + b"\x00" * 30) is None


def test_empty_and_non_string_results_become_none():
    assert sanitize_call_result("") is None
    assert sanitize_call_result("\x00\x00") is None
    assert sanitize_call_result(None) is None
    assert sanitize_call_result(18) is None


def test_uri_keeps_whitespace_but_drops_null_bytes():
    assert sanitize_uri("ipfs://Qm\x00abc/{id}.json") == "ipfs://Qmabc/{id}.json"
    assert sanitize_uri("\x00") is None
    assert sanitize_uri(None) is None


def test_call_result_whitespace_is_kept():
    assert sanitize_call_result(" Wrapped Ether ") == " Wrapped Ether "
    assert sanitize_call_result("   ") == "   "
