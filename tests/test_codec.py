"""
tests/test_codec.py -- Unit tests for unpadded base64url encoding.

Coverage:
  - Padding is stripped and the URL-safe alphabet is used
  - Known vectors from RFC 4648
  - Strict decoding: foreign characters, padding, and impossible lengths
"""

from __future__ import annotations

import pytest

from auth.codec import Base64DecodeError, b64url_decode, b64url_encode


class TestEncode:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (b"", ""),
            (b"f", "Zg"),
            (b"fo", "Zm8"),
            (b"foo", "Zm9v"),
            (b"foob", "Zm9vYg"),
            (b"fooba", "Zm9vYmE"),
            (b"foobar", "Zm9vYmFy"),
        ],
    )
    def test_rfc4648_vectors_without_padding(self, raw: bytes, expected: str) -> None:
        assert b64url_encode(raw) == expected

    def test_uses_url_safe_alphabet(self) -> None:
        encoded = b64url_encode(b"\xfb\xff\xbf")
        assert encoded == "-_-_"
        assert "+" not in encoded and "/" not in encoded

    def test_header_encoding_matches_jwt_examples(self) -> None:
        assert b64url_encode(b'{"alg":"HS256","typ":"JWT"}') == "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9"


class TestDecode:
    def test_decodes_unpadded_text(self) -> None:
        assert b64url_decode("Zm9vYg") == b"foob"
        assert b64url_decode("-_-_") == b"\xfb\xff\xbf"

    def test_empty_string_is_empty_bytes(self) -> None:
        assert b64url_decode("") == b""

    @pytest.mark.parametrize("text", ["Zm9v+g", "Zm9v/g", "Zm 9v", "Zm9v\n", "Zm9vYg=="])
    def test_rejects_characters_outside_alphabet(self, text: str) -> None:
        with pytest.raises(Base64DecodeError):
            b64url_decode(text)

    def test_rejects_length_one_mod_four(self) -> None:
        with pytest.raises(Base64DecodeError):
            b64url_decode("Zm9vY")

    def test_rejects_non_str(self) -> None:
        with pytest.raises(Base64DecodeError):
            b64url_decode(b"Zm9v")  # type: ignore[arg-type]

    def test_decode_error_is_a_value_error(self) -> None:
        assert issubclass(Base64DecodeError, ValueError)
