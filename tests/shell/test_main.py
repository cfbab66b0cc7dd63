"""Tests for the Cloud Function entry points.

The orchestrator and config loading are mocked.
"""

from unittest.mock import Mock, patch

from quake_notify.core.config import Config, SourceConfig
from quake_notify.orchestrator import IngestionResult, ProcessingResult
from quake_notify import main


def make_result(*runs):
    return ProcessingResult(runs=list(runs))


class TestHttpEntryPoint:
    """Tests for quake_notify_http()."""

    @patch("quake_notify.main.Orchestrator")
    @patch("quake_notify.main._get_config")
    def test_success(self, mock_get_config, mock_orchestrator):
        mock_get_config.return_value = Config()
        mock_orchestrator.return_value.process.return_value = make_result(
            IngestionResult(source="USGS", events_fetched=3, events_new=1, notifications_sent=5,
                            watermark_after=1703001600000),
        )

        body, status = main.quake_notify_http(Mock())

        assert status == 200
        assert body["status"] == "success"
        assert body["sources"][0]["notifications_sent"] == 5
        assert body["sources"][0]["watermark"] == 1703001600000
        assert "errors" not in body

    @patch("quake_notify.main.Orchestrator")
    @patch("quake_notify.main._get_config")
    def test_partial_failure(self, mock_get_config, mock_orchestrator):
        mock_get_config.return_value = Config()
        mock_orchestrator.return_value.process.return_value = make_result(
            IngestionResult(source="USGS", errors=["Failed to fetch feed: timeout"]),
        )

        body, status = main.quake_notify_http(Mock())

        assert status == 207
        assert body["errors"] == ["USGS: Failed to fetch feed: timeout"]

    @patch("quake_notify.main.Orchestrator")
    @patch("quake_notify.main._get_config")
    def test_invalid_config(self, mock_get_config, mock_orchestrator):
        mock_get_config.return_value = Config(sources=[SourceConfig(name="NOPE")])

        body, status = main.quake_notify_http(Mock())

        assert status == 400
        mock_orchestrator.assert_not_called()

    @patch("quake_notify.main._get_config")
    def test_unexpected_error(self, mock_get_config):
        mock_get_config.side_effect = RuntimeError("boom")

        body, status = main.quake_notify_http(Mock())

        assert status == 500
        assert body["message"] == "boom"


class TestPubSubEntryPoint:
    """Tests for quake_notify_pubsub()."""

    @patch("quake_notify.main.Orchestrator")
    @patch("quake_notify.main._get_config")
    def test_runs_orchestrator(self, mock_get_config, mock_orchestrator):
        mock_get_config.return_value = Config()
        mock_orchestrator.return_value.process.return_value = make_result()

        main.quake_notify_pubsub(Mock())

        mock_orchestrator.return_value.process.assert_called_once()

    @patch("quake_notify.main._get_config")
    def test_never_raises(self, mock_get_config):
        mock_get_config.side_effect = RuntimeError("boom")
        main.quake_notify_pubsub(Mock())
