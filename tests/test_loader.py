import json
from pathlib import Path

import pytest

from gitlit.exporter.loader import EndpointFileError, detect_format, load_endpoints, parse_endpoint_list

FIXTURES = Path(__file__).parent / "fixtures"


class TestDetectFormat:
    def test_postman(self):
        assert detect_format(FIXTURES / "sample.postman.json") == "postman"

    def test_endpoint_list(self):
        assert detect_format(FIXTURES / "endpoints.json") == "endpoints"


class TestLoadEndpoints:
    def test_discover_output(self):
        endpoints = load_endpoints(FIXTURES / "endpoints.json")
        assert [(e.method, e.path) for e in endpoints] == [
            ("GET", "/users/[id]"),
            ("POST", "/posts"),
            ("GET", "/"),
        ]
        assert endpoints[1].parameters.body == ["body"]
        assert endpoints[2].parameters.query == []

    def test_bare_list(self, tmp_path):
        f = tmp_path / "eps.json"
        f.write_text(json.dumps([{"method": "get", "path": "/x"}]), encoding="utf-8")
        [ep] = load_endpoints(f)
        assert ep.method == "GET"

    def test_yaml_list(self, tmp_path):
        f = tmp_path / "eps.yaml"
        f.write_text("endpoints:\n  - method: DELETE\n    path: /items/:id\n", encoding="utf-8")
        [ep] = load_endpoints(f)
        assert (ep.method, ep.path) == ("DELETE", "/items/:id")


class TestPostmanImport:
    def test_flattens_folders_and_skips_unsupported_methods(self):
        endpoints = load_endpoints(FIXTURES / "sample.postman.json")
        assert len(endpoints) == 2

    def test_structured_url(self):
        get_ep = load_endpoints(FIXTURES / "sample.postman.json")[0]
        assert get_ep.method == "GET"
        assert get_ep.path == "/api/users"
        assert get_ep.parameters.query == ["page"]
        assert get_ep.file == "List users"

    def test_raw_url_and_body(self):
        post_ep = load_endpoints(FIXTURES / "sample.postman.json")[1]
        assert post_ep.method == "POST"
        assert post_ep.path == "/api/users"
        assert post_ep.parameters.body == ["body"]


def test_empty_object():
    assert parse_endpoint_list({}) == []


class TestBadInput:
    def test_unsupported_method(self, tmp_path):
        f = tmp_path / "eps.json"
        f.write_text(json.dumps([{"method": "OPTIONS", "path": "/x"}]), encoding="utf-8")
        with pytest.raises(EndpointFileError, match="invalid endpoint"):
            load_endpoints(f)

    def test_missing_path(self, tmp_path):
        f = tmp_path / "eps.json"
        f.write_text(json.dumps({"endpoints": [{"method": "GET"}]}), encoding="utf-8")
        with pytest.raises(EndpointFileError, match="1 errors"):
            load_endpoints(f)

    def test_not_json_or_yaml(self, tmp_path):
        f = tmp_path / "eps.yaml"
        f.write_text("endpoints: [\n  - {method: GET", encoding="utf-8")
        with pytest.raises(EndpointFileError, match="not JSON or YAML"):
            load_endpoints(f)

    def test_scalar_document(self, tmp_path):
        f = tmp_path / "eps.yaml"
        f.write_text("hello\n", encoding="utf-8")
        with pytest.raises(EndpointFileError, match="expected a list of endpoints, got str"):
            load_endpoints(f)

    def test_endpoints_key_not_a_list(self, tmp_path):
        f = tmp_path / "eps.json"
        f.write_text('{"endpoints": 5}', encoding="utf-8")
        with pytest.raises(EndpointFileError, match=str(f.name)):
            load_endpoints(f)

    def test_postman_item_not_a_dict(self, tmp_path):
        f = tmp_path / "broken.postman.json"
        f.write_text(json.dumps({"info": {"schema": "v2.1"}, "item": [5]}), encoding="utf-8")
        with pytest.raises(EndpointFileError, match="unexpected structure"):
            load_endpoints(f)
