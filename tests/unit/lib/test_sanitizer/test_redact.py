"""Unit tests for payload redaction."""

import pytest

from audit_trail.lib.sanitizer import MAX_DEPTH_EXCEEDED, REDACTED, is_sensitive_key, sanitize


class TestIsSensitiveKey:
    """Tests for sensitive key matching."""

    @pytest.mark.parametrize(
        "key",
        ["password", "Password", "passwordHash", "accessToken", "refresh_token", "clientSecret", "API_KEY", "cvv"],
    )
    def test_sensitive_keys(self, key: str) -> None:
        assert is_sensitive_key(key) is True

    @pytest.mark.parametrize("key", ["email", "name", "total", "invoiceNumber", 42])
    def test_plain_keys(self, key: object) -> None:
        assert is_sensitive_key(key) is False


class TestSanitize:
    """Tests for sanitize()."""

    def test_none_passthrough(self) -> None:
        assert sanitize(None) is None

    def test_scalars_unchanged(self) -> None:
        assert sanitize(5) == 5
        assert sanitize("text") == "text"

    def test_redacts_nested_keys_only(self) -> None:
        payload = {
            "email": "user@example.com",
            "password": "hunter2",
            "profile": {"twoFactorSecret": "ABC", "city": "Bogota"},
            "cards": [{"creditCard": "4111", "label": "main"}],
        }
        result = sanitize(payload)
        assert result == {
            "email": "user@example.com",
            "password": REDACTED,
            "profile": {"twoFactorSecret": REDACTED, "city": "Bogota"},
            "cards": [{"creditCard": REDACTED, "label": "main"}],
        }

    def test_redacts_container_values(self) -> None:
        result = sanitize({"tokens": ["a", "b"], "ok": 1})
        assert result == {"tokens": REDACTED, "ok": 1}

    def test_does_not_mutate_input(self) -> None:
        payload = {"password": "hunter2", "nested": {"apiKey": "k"}}
        sanitize(payload)
        assert payload == {"password": "hunter2", "nested": {"apiKey": "k"}}

    def test_tuples_and_sets_become_lists(self) -> None:
        result = sanitize({"ids": (1, 2), "tags": {"x"}})
        assert result == {"ids": [1, 2], "tags": ["x"]}

    def test_depth_cap(self) -> None:
        payload: dict = {}
        node = payload
        for _ in range(15):
            node["child"] = {}
            node = node["child"]

        result = sanitize(payload)
        node = result
        for _ in range(10):
            node = node["child"]
        assert node["child"] == MAX_DEPTH_EXCEEDED

    def test_custom_max_depth(self) -> None:
        result = sanitize({"a": {"b": {"c": 1}}}, max_depth=1)
        assert result == {"a": {"b": MAX_DEPTH_EXCEEDED}}

    def test_cyclic_payload_terminates(self) -> None:
        payload: dict = {"name": "loop"}
        payload["self"] = payload

        result = sanitize(payload)
        node = result
        for _ in range(10):
            assert node["name"] == "loop"
            node = node["self"]
        assert node["self"] == MAX_DEPTH_EXCEEDED

    def test_idempotent(self) -> None:
        payload = {"password": "x", "items": [{"secret": 1, "v": (1, 2)}], "deep": {"a": {"b": {"c": {}}}}}
        once = sanitize(payload, max_depth=3)
        assert sanitize(once, max_depth=3) == once

    def test_uncopyable_payload_is_still_sanitized(self) -> None:
        class Uncopyable:
            def __deepcopy__(self, memo: dict) -> "Uncopyable":
                raise TypeError("no copies")

        marker = Uncopyable()
        payload = {"token": "t", "obj": marker}
        result = sanitize(payload)
        assert result["token"] == REDACTED
        assert result["obj"] is marker
        assert payload["token"] == "t"
