"""Tests for the Podcast Index client and the audio download."""

import hashlib
from unittest.mock import Mock

import pytest
import requests

from podlabel.errors import NetworkError
from podlabel.ingestion import PodcastIndexClient, build_auth_headers, download_audio


def response(payload=None, status_error=None, chunks=()):
    mock = Mock()
    mock.json.return_value = payload
    mock.raise_for_status.side_effect = status_error
    mock.iter_content.return_value = iter(chunks)
    return mock


class TestAuthHeaders:
    def test_headers(self):
        headers = build_auth_headers("KEY", "SECRET", 1700000000, user_agent="podlabel-test")

        expected = hashlib.sha1(b"KEYSECRET1700000000").hexdigest()
        assert headers == {
            "User-Agent": "podlabel-test",
            "X-Auth-Date": "1700000000",
            "X-Auth-Key": "KEY",
            "Authorization": expected,
        }
        assert len(headers["Authorization"]) == 40

    def test_digest_changes_with_time(self):
        first = build_auth_headers("KEY", "SECRET", 1700000000)
        second = build_auth_headers("KEY", "SECRET", 1700000001)

        assert first["Authorization"] != second["Authorization"]


class TestPodcastIndexClient:
    @pytest.fixture
    def session(self):
        return Mock(spec=requests.Session)

    @pytest.fixture
    def client(self, session):
        return PodcastIndexClient(
            "KEY",
            "SECRET",
            base_url="https://api.example.com/1.0/",
            session=session,
            clock=lambda: 1700000000.7,
        )

    def test_search_by_person(self, client, session, episode_record):
        session.get.return_value = response({"status": "true", "items": [episode_record]})

        items = client.search_by_person("luke leaman")

        assert items == [episode_record]
        args, kwargs = session.get.call_args
        assert args == ("https://api.example.com/1.0/search/byperson",)
        assert kwargs["params"] == {"q": "luke leaman"}
        assert kwargs["headers"]["X-Auth-Date"] == "1700000000"
        assert kwargs["headers"]["Authorization"] == hashlib.sha1(
            b"KEYSECRET1700000000"
        ).hexdigest()
        assert kwargs["timeout"] == 30.0

    @pytest.mark.parametrize("payload", [{"status": "true"}, {"items": None}, ["not", "an", "object"]])
    def test_missing_items_returns_empty_list(self, client, session, payload):
        session.get.return_value = response(payload)

        assert client.search_by_person("nobody") == []

    def test_http_error_becomes_network_error(self, client, session):
        session.get.return_value = response(
            status_error=requests.HTTPError("401 Client Error: Unauthorized")
        )

        with pytest.raises(NetworkError, match="Podcast Index search failed"):
            client.search_by_person("luke leaman")

    def test_connection_error_becomes_network_error(self, client, session):
        session.get.side_effect = requests.ConnectionError("DNS failure")

        with pytest.raises(NetworkError):
            client.search_by_person("luke leaman")

    def test_invalid_json_becomes_network_error(self, client, session):
        broken = response()
        broken.json.side_effect = ValueError("Expecting value")
        session.get.return_value = broken

        with pytest.raises(NetworkError, match="invalid JSON"):
            client.search_by_person("luke leaman")

    def test_requests_json_decode_error_is_reported_as_invalid_json(self, client, session):
        broken = response()
        broken.json.side_effect = requests.JSONDecodeError("Expecting value", "<html>", 0)
        session.get.return_value = broken

        with pytest.raises(NetworkError, match="invalid JSON") as exc_info:
            client.search_by_person("luke leaman")

        assert "search failed" not in str(exc_info.value)

    def test_from_config(self, config):
        client = PodcastIndexClient.from_config(config)

        assert client.api_key == "pi-key"
        assert client.api_secret == "pi-secret"
        assert client.base_url == "https://api.podcastindex.org/api/1.0"


class TestDownloadAudio:
    def test_streams_chunks(self):
        session = Mock()
        session.get.return_value = response(chunks=[b"ID3", b"", b"data"])

        chunks = list(download_audio("https://cdn.example.com/1.mp3", timeout=5, session=session))

        assert chunks == [b"ID3", b"data"]
        _, kwargs = session.get.call_args
        assert kwargs["stream"] is True
        assert kwargs["timeout"] == 5
        assert "Mozilla" in kwargs["headers"]["User-Agent"]
        session.get.return_value.close.assert_called_once()

    def test_error_status_raises_before_streaming(self):
        session = Mock()
        session.get.return_value = response(status_error=requests.HTTPError("404"))

        with pytest.raises(NetworkError, match="Failed to download"):
            download_audio("https://cdn.example.com/1.mp3", session=session)

    def test_interrupted_body_raises_network_error(self):
        def broken():
            yield b"ID3"
            raise requests.ConnectionError("reset by peer")

        session = Mock()
        reply = response()
        reply.iter_content.return_value = broken()
        session.get.return_value = reply

        chunks = download_audio("https://cdn.example.com/1.mp3", session=session)

        assert next(chunks) == b"ID3"
        with pytest.raises(NetworkError, match="interrupted"):
            next(chunks)
