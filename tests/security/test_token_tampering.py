"""
Security tests for token tampering

Any modification of a token must decode to None, never raise, and never
reveal which check failed.
"""

import base64
import logging

import pytest

from secure_session.core.logging_config import SECURITY_LOGGER_NAME
from secure_session.session import codec
from secure_session.session.options import SessionConfig

pytestmark = pytest.mark.security


def _split(token: str):
    cipher_b64, nonce_b64 = token.split(";")
    return base64.b64decode(cipher_b64), nonce_b64


def _join(ciphertext: bytes, nonce_b64: str) -> str:
    return base64.b64encode(ciphertext).decode() + ";" + nonce_b64


class TestTamperDetection:
    """Authenticated encryption rejects every modified byte"""

    def test_flipping_any_ciphertext_byte(self, raw_config):
        token = codec.encode({"user_id": 42, "admin": False}, raw_config).token
        ciphertext, nonce_b64 = _split(token)

        for index in range(len(ciphertext)):
            tampered = bytearray(ciphertext)
            tampered[index] ^= 0x01
            assert codec.decode(_join(bytes(tampered), nonce_b64), raw_config) is None, (
                f"Flipped byte {index} was not detected"
            )

    @pytest.mark.parametrize("payload", ["hello", "aaaaa", "x" * 40])
    def test_flipping_any_token_character(self, raw_config, payload):
        token = codec.encode(payload, raw_config).token

        for index, char in enumerate(token):
            if char == ";":
                continue
            tampered = token[:index] + chr(ord(char) ^ 0x01) + token[index + 1:]
            assert codec.decode(tampered, raw_config) is None, (
                f"Changed character {index} ({char!r}) was not detected"
            )

    def test_non_canonical_trailing_bits(self, raw_config):
        token = codec.encode("hello", raw_config).token
        cipher_b64, nonce_b64 = token.split(";")
        # Last data character before padding carries bits the decoder drops
        stripped = cipher_b64.rstrip("=")
        last = stripped[-1]
        alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
        sibling = alphabet[alphabet.index(last) ^ 0x01]
        padding = cipher_b64[len(stripped):]
        variant = stripped[:-1] + sibling + padding + ";" + nonce_b64
        if padding:
            assert base64.b64decode(variant.split(";")[0]) == base64.b64decode(cipher_b64)
        assert codec.decode(variant, raw_config) is None

    def test_non_canonical_nonce(self, raw_config):
        token = codec.encode("hello", raw_config).token
        cipher_b64, nonce_b64 = token.split(";")
        # 16 bytes encode to 22 characters plus "==", the last one holds 4 unused bits
        alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
        last = nonce_b64[21]
        sibling = alphabet[alphabet.index(last) ^ 0x01]
        variant_nonce = nonce_b64[:21] + sibling + nonce_b64[22:]
        assert base64.urlsafe_b64decode(variant_nonce) == base64.urlsafe_b64decode(nonce_b64)
        assert codec.decode(cipher_b64 + ";" + variant_nonce, raw_config) is None

    def test_truncated_ciphertext(self, raw_config):
        token = codec.encode("hello", raw_config).token
        ciphertext, nonce_b64 = _split(token)
        assert codec.decode(_join(ciphertext[:-1], nonce_b64), raw_config) is None
        assert codec.decode(_join(ciphertext[:10], nonce_b64), raw_config) is None

    def test_swapped_nonce(self, raw_config):
        first = codec.encode("hello", raw_config).token
        second = codec.encode("world", raw_config).token
        ciphertext, _ = _split(first)
        _, other_nonce = _split(second)
        assert codec.decode(_join(ciphertext, other_nonce), raw_config) is None

    def test_wrong_key(self, raw_config):
        token = codec.encode("hello", raw_config).token
        other = SessionConfig(name="raw", secret="fedcba9876543210")
        assert codec.decode(token, other) is None

    def test_salted_token_needs_same_salt(self, salted_config):
        token = codec.encode("hello", salted_config).token
        other = SessionConfig(
            secret="0123456789abcdef",
            salt="0000000000000000",
            kdf_iterations=salted_config.kdf_iterations,
        )
        assert codec.decode(token, other) is None

    def test_raw_and_derived_keys_do_not_mix(self, raw_config, salted_config):
        token = codec.encode("hello", raw_config).token
        assert codec.decode(token, salted_config) is None


class TestMalformedInput:
    """Attacker-controlled shapes resolve to None"""

    @pytest.mark.parametrize("token", [
        "",
        ";",
        "no-separator",
        "a;b;c",
        "!!!not-base64!!!;AAAAAAAAAAAAAAAAAAAAAA==",
        ";AAAAAAAAAAAAAAAAAAAAAA==",
        "Zm9v;c2hvcnQ=",
        "Zm9v;ÿÿÿ",
        "Zm9v;AAAAAAAAAAAAAAAAAAAAAA==",
    ])
    def test_malformed_tokens(self, raw_config, token):
        assert codec.decode(token, raw_config) is None

    def test_non_string_token(self, raw_config):
        assert codec.decode(None, raw_config) is None

    def test_forged_plaintext_shape(self, raw_config):
        # Correctly encrypted, but without the timestamp part
        nonce = b"n" * 16
        cipher = codec.build_token_cipher(raw_config.key, nonce)
        ciphertext = base64.urlsafe_b64decode(cipher.encrypt(b"no-timestamp"))
        token = _join(ciphertext, base64.urlsafe_b64encode(nonce).decode())
        assert codec.decode(token, raw_config) is None

    def test_forged_timestamp(self, raw_config):
        nonce = b"n" * 16
        cipher = codec.build_token_cipher(raw_config.key, nonce)
        ciphertext = base64.urlsafe_b64decode(cipher.encrypt(b"payload;yesterday"))
        token = _join(ciphertext, base64.urlsafe_b64encode(nonce).decode())
        assert codec.decode(token, raw_config) is None


class TestRejectionLogging:
    """Rejections are logged without token or key material"""

    def test_rejection_is_logged_without_secrets(self, raw_config, caplog):
        token = codec.encode("hello", raw_config).token
        ciphertext, nonce_b64 = _split(token)
        tampered = _join(ciphertext[:-1] + bytes([ciphertext[-1] ^ 0xFF]), nonce_b64)

        with caplog.at_level(logging.DEBUG, logger=SECURITY_LOGGER_NAME):
            assert codec.decode(tampered, raw_config) is None

        events = [r for r in caplog.records if r.name == SECURITY_LOGGER_NAME]
        assert events
        assert events[-1].event_type == "token_rejected"
        logged = " ".join(r.getMessage() for r in caplog.records)
        assert tampered not in logged
        assert raw_config.secret not in logged
