"""
Tests for the eCFR API client.
"""
from datetime import date
from unittest.mock import Mock

import pytest
import requests

from ecfr_monitor.core.exceptions import AgencyFeedError
from ecfr_monitor.core.models import RawContent, SizeSource, StructuralSummary
from ecfr_monitor.ingestion.ecfr_client import ECFRClient

SNAPSHOT = date(2024, 1, 1)


def make_response(status_code=200, content=b"", text="", json_data=None, json_error=None):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.content = content
    response.text = text
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = json_data
    if response.ok:
        response.raise_for_status.return_value = None
    else:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    return response


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def client(session):
    return ECFRClient(base_url="https://www.ecfr.gov/", timeout=30, session=session)


class TestFetchTitle:
    """Per-title content requests"""

    def test_full_text_success(self, client, session):
        xml = "<DIV1><P>Sec. 1</P></DIV1>"
        session.get.return_value = make_response(content=xml.encode(), text=xml)

        result = client.fetch_title(7, SNAPSHOT)

        assert result.ok
        assert result.status_code == 200
        assert result.payload == RawContent(text=xml)
        session.get.assert_called_once_with(
            "https://www.ecfr.gov/api/versioner/v1/full/2024-01-01/title-7.xml", timeout=30
        )

    def test_structure_success(self, client, session):
        session.get.return_value = make_response(
            content=b"{}", json_data={"identifier": "7", "type": "title", "size": 48213}
        )

        result = client.fetch_title(7, SNAPSHOT, SizeSource.STRUCTURE)

        assert result.ok
        assert result.payload == StructuralSummary(reported_size=48213)
        assert session.get.call_args[0][0] == (
            "https://www.ecfr.gov/api/versioner/v1/structure/2024-01-01/title-7.json"
        )

    def test_non_2xx_is_reported_not_raised(self, client, session):
        session.get.return_value = make_response(status_code=503, content=b"busy", text="busy")

        result = client.fetch_title(7, SNAPSHOT)

        assert not result.ok
        assert result.status_code == 503
        assert result.payload is None

    def test_unfollowed_redirect_is_a_failure(self, client, session):
        response = make_response(status_code=302, content=b"<html>Found</html>", text="<html>Found</html>")
        response.ok = True  # requests treats every status below 400 as ok
        session.get.return_value = response

        result = client.fetch_title(7, SNAPSHOT)

        assert not result.ok
        assert result.status_code == 302
        assert result.payload is None

    def test_empty_body_is_a_failure(self, client, session):
        session.get.return_value = make_response(content=b"", text="")

        result = client.fetch_title(7, SNAPSHOT)

        assert not result.ok
        assert result.error == "empty body"

    def test_network_error_is_a_failure(self, client, session):
        session.get.side_effect = requests.ConnectionError("connection reset")

        result = client.fetch_title(7, SNAPSHOT)

        assert not result.ok
        assert result.status_code is None
        assert "connection reset" in result.error

    @pytest.mark.parametrize("json_kwargs", [
        {"json_error": ValueError("Expecting value")},
        {"json_data": {"identifier": "7"}},
        {"json_data": {"size": "48213"}},
        {"json_data": {"size": -1}},
        {"json_data": ["not", "an", "object"]},
    ])
    def test_malformed_structure_is_a_failure(self, client, session, json_kwargs):
        session.get.return_value = make_response(content=b"{...}", **json_kwargs)

        result = client.fetch_title(7, SNAPSHOT, SizeSource.STRUCTURE)

        assert not result.ok
        assert "malformed" in result.error

    def test_one_request_per_call(self, client, session):
        session.get.return_value = make_response(status_code=500, content=b"x", text="x")

        client.fetch_title(7, SNAPSHOT)

        assert session.get.call_count == 1


class TestFetchAgencies:
    """Agency directory feed"""

    @pytest.fixture
    def directory(self):
        return {
            "agencies": [
                {
                    "name": "Department of Agriculture",
                    "short_name": "USDA",
                    "slug": "agriculture-department",
                    "children": [
                        {
                            "name": "Forest Service",
                            "short_name": "",
                            "slug": "forest-service",
                            "children": [],
                            "cfr_references": [{"title": 36, "chapter": "II"}],
                        }
                    ],
                    "cfr_references": [
                        {"title": 2, "chapter": "IV"},
                        {"title": 7, "subtitle": "A"},
                    ],
                },
                {
                    "name": "Administrative Conference of the United States",
                    "short_name": "ACUS",
                    "slug": "administrative-conference-of-the-united-states",
                    "children": [],
                    "cfr_references": [],
                },
            ]
        }

    def test_agencies_with_references_only(self, client, session, directory):
        session.get.return_value = make_response(content=b"{}", json_data=directory)

        agencies = client.fetch_agencies()

        assert [a.slug for a in agencies] == ["agriculture-department"]
        usda = agencies[0]
        assert usda.short_name == "USDA"
        assert [(r.title, r.chapter) for r in usda.cfr_references] == [(2, "IV"), (7, None)]
        assert session.get.call_args[0][0] == "https://www.ecfr.gov/api/admin/v1/agencies.json"

    def test_children_flattened_on_request(self, client, session, directory):
        session.get.return_value = make_response(content=b"{}", json_data=directory)

        agencies = client.fetch_agencies(include_children=True)

        assert [a.slug for a in agencies] == ["agriculture-department", "forest-service"]
        assert agencies[1].short_name == "Forest Service", "Blank short name falls back to name"

    def test_malformed_entry_skipped(self, client, session, directory):
        directory["agencies"].append({"name": "No slug", "cfr_references": [{"title": 1}]})
        session.get.return_value = make_response(content=b"{}", json_data=directory)

        agencies = client.fetch_agencies()

        assert [a.slug for a in agencies] == ["agriculture-department"]

    def test_http_error_raises(self, client, session):
        session.get.return_value = make_response(status_code=502)

        with pytest.raises(AgencyFeedError):
            client.fetch_agencies()

    def test_network_error_raises(self, client, session):
        session.get.side_effect = requests.Timeout("timed out")

        with pytest.raises(AgencyFeedError):
            client.fetch_agencies()

    def test_invalid_json_raises(self, client, session):
        session.get.return_value = make_response(content=b"<html>", json_error=ValueError("bad"))

        with pytest.raises(AgencyFeedError):
            client.fetch_agencies()

    def test_empty_directory_raises(self, client, session):
        session.get.return_value = make_response(content=b"{}", json_data={"agencies": []})

        with pytest.raises(AgencyFeedError):
            client.fetch_agencies()
