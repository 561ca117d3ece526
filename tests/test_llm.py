"""Tests for jobradar.llm — parse_json(), call_gemini() retry logic, client creation."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from google.genai.errors import ClientError, ServerError

from jobradar.llm import call_gemini, create_client, parse_json


class TestParseJson:
    def test_raw_array(self):
        assert parse_json('[{"score": 1}]') == [{"score": 1}]

    def test_raw_object(self):
        assert parse_json('{"key": "value"}') == {"key": "value"}

    def test_markdown_fenced(self):
        text = '```json\n[{"job_index": 1, "score": 80, "justification": "ok"}]\n```'
        assert parse_json(text)[0]["score"] == 80

    def test_array_embedded_in_text(self):
        text = 'Here you go:\n[{"score": 70}, {"score": 60}]\nHope this helps.'
        assert parse_json(text) == [{"score": 70}, {"score": 60}]

    def test_object_embedded_in_text(self):
        assert parse_json('Result: {"score": 85} end.')["score"] == 85

    def test_empty_raises(self):
        with pytest.raises(ValueError, match="Empty response"):
            parse_json("")

    def test_garbage_raises(self):
        with pytest.raises(ValueError, match="Could not parse JSON"):
            parse_json("this is not json at all")


class TestCallGemini:
    """Mock client.models.generate_content + time.sleep."""

    def _make_client(self, side_effects: list) -> MagicMock:
        client = MagicMock()
        client.models.generate_content.side_effect = side_effects
        return client

    def _make_response(self, text: str | None) -> MagicMock:
        resp = MagicMock()
        resp.text = text
        return resp

    @patch("jobradar.llm.time.sleep")
    def test_success_first_try(self, mock_sleep: MagicMock):
        client = self._make_client([self._make_response("hello")])

        assert call_gemini(client, "prompt", model="gemini-test") == "hello"
        assert client.models.generate_content.call_args.kwargs["model"] == "gemini-test"
        mock_sleep.assert_not_called()

    @patch("jobradar.llm.time.sleep")
    def test_none_text_becomes_empty(self, mock_sleep: MagicMock):
        client = self._make_client([self._make_response(None)])
        assert call_gemini(client, "prompt") == ""

    @patch("jobradar.llm.time.sleep")
    def test_retries_on_server_error(self, mock_sleep: MagicMock):
        client = self._make_client([ServerError(503, {"error": "Unavailable"}), self._make_response("recovered")])

        assert call_gemini(client, "prompt") == "recovered"
        assert mock_sleep.call_count == 1

    @patch("jobradar.llm.time.sleep")
    def test_retries_on_rate_limit(self, mock_sleep: MagicMock):
        client = self._make_client([ClientError(429, {"error": "RESOURCE_EXHAUSTED"}), self._make_response("ok")])

        assert call_gemini(client, "prompt") == "ok"

    @patch("jobradar.llm.time.sleep")
    def test_other_client_error_raises_immediately(self, mock_sleep: MagicMock):
        client = self._make_client([ClientError(400, {"error": "Bad request"})])

        with pytest.raises(ClientError):
            call_gemini(client, "prompt")
        mock_sleep.assert_not_called()

    @patch("jobradar.llm.time.sleep")
    def test_gives_up_after_max_retries(self, mock_sleep: MagicMock):
        client = self._make_client([ServerError(500, {"error": "boom"})] * 3)

        with pytest.raises(ServerError):
            call_gemini(client, "prompt", max_retries=3)
        assert client.models.generate_content.call_count == 3
        assert mock_sleep.call_count == 2


class TestCreateClient:
    def test_missing_key_raises(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        with pytest.raises(ValueError, match="GOOGLE_API_KEY"):
            create_client()

    @patch("jobradar.llm.genai.Client")
    def test_timeout_in_milliseconds(self, mock_client_cls: MagicMock):
        create_client("key", timeout_s=45)

        http_options = mock_client_cls.call_args.kwargs["http_options"]
        assert mock_client_cls.call_args.kwargs["api_key"] == "key"
        assert http_options.timeout == 45_000

    @patch("jobradar.llm.genai.Client")
    def test_env_key(self, mock_client_cls: MagicMock, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", "env-key")
        create_client()
        mock_client_cls.assert_called_once_with(api_key="env-key")
