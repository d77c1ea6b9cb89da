"""
Unit tests for the static connector.

These tests verify the static connector functionality without external dependencies.
"""

from confsync.connectors import StaticConnector, compute_etag
from confsync.core.models import ContentSnapshot, FetchKind, FetchOutcome


URL = "https://cdn.test/main/conference.json"


class TestComputeEtag:
    """Tests for compute_etag."""

    def test_is_quoted_and_stable(self):
        etag = compute_etag({"b": 1, "a": 2})

        assert etag.startswith('"') and etag.endswith('"')
        assert etag == compute_etag({"a": 2, "b": 1})

    def test_changes_with_content(self):
        assert compute_etag({"a": 1}) != compute_etag({"a": 2})


class TestStaticConnector:
    """Tests for StaticConnector."""

    def test_connector_initialization(self):
        connector = StaticConnector(documents={URL: {"a": 1}})

        assert connector.get_name() == "static"
        assert connector.fetch(URL).payload == {"a": 1}

    def test_fetch_decodes_payload(self, content_connector, content_document):
        etag = content_connector.serve(URL, content_document)

        outcome = content_connector.fetch(URL)

        assert outcome.is_fetched
        assert isinstance(outcome.payload, ContentSnapshot)
        assert outcome.validator == etag

    def test_matching_validator_is_unchanged(self, content_connector, content_document):
        etag = content_connector.serve(URL, content_document)

        outcome = content_connector.fetch(URL, prior_validator=etag)

        assert outcome.is_unchanged

    def test_stale_validator_refetches(self, content_connector, content_document):
        content_connector.serve(URL, content_document)

        outcome = content_connector.fetch(URL, prior_validator='"old"')

        assert outcome.is_fetched

    def test_explicit_etag(self, content_connector, content_document):
        assert content_connector.serve(URL, content_document, etag='"v1"') == '"v1"'

    def test_missing_document_is_404(self, content_connector):
        outcome = content_connector.fetch(URL)

        assert outcome.kind == FetchKind.HTTP_STATUS
        assert outcome.status_code == 404

    def test_withdraw(self, content_connector, content_document):
        content_connector.serve(URL, content_document)
        content_connector.withdraw(URL)

        assert content_connector.fetch(URL).status_code == 404

    def test_decode_failure_is_parse_error(self, content_connector):
        content_connector.serve(URL, ["not", "a", "feed"])

        assert content_connector.fetch(URL).kind == FetchKind.PARSE

    def test_offline(self, content_connector, content_document):
        content_connector.serve(URL, content_document)
        content_connector.offline = True

        assert content_connector.fetch(URL).kind == FetchKind.OFFLINE

    def test_enqueued_outcomes_take_priority(self, content_connector, content_document):
        content_connector.serve(URL, content_document)
        content_connector.enqueue(FetchOutcome.failed("boom"))

        assert content_connector.fetch(URL).kind == FetchKind.TRANSIENT
        assert content_connector.fetch(URL).is_fetched

    def test_request_history(self, content_connector):
        content_connector.fetch(URL)
        content_connector.fetch(URL, prior_validator='"x"')

        assert [r.prior_validator for r in content_connector.request_history] == [None, '"x"']

        content_connector.reset()
        assert content_connector.request_history == []
