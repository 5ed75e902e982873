import pytest
from pydantic import ValidationError

from gitlit.discovery.base import EndpointParameters, EndpointRecord
from gitlit.runner.executor import TestResult


class TestEndpointParameters:
    def test_defaults_are_empty(self):
        params = EndpointParameters()
        assert params.query == []
        assert params.body == []
        assert params.headers == []


class TestEndpointRecord:
    def test_create_minimal(self):
        ep = EndpointRecord(method="GET", path="/api/users")
        assert ep.file == ""
        assert ep.parameters.query == []

    def test_method_uppercased(self):
        assert EndpointRecord(method="patch", path="/x").method == "PATCH"

    def test_unsupported_method(self):
        with pytest.raises(ValidationError):
            EndpointRecord(method="OPTIONS", path="/x")

    def test_frozen(self):
        ep = EndpointRecord(method="GET", path="/x")
        with pytest.raises(ValidationError):
            ep.path = "/y"

    def test_from_dict(self):
        ep = EndpointRecord.model_validate({
            "method": "POST",
            "path": "/posts",
            "file": "app/api/posts/route.ts",
            "parameters": {"query": [], "body": ["body"], "headers": []},
        })
        assert ep.parameters.body == ["body"]


class TestTestResult:
    def test_aliases(self):
        result = TestResult(method="GET", path="/", url="http://localhost:3001/", statusCode=200, responseTimeMs=12.5)
        assert result.status == "pending"
        dumped = result.model_dump(by_alias=True)
        assert dumped["statusCode"] == 200
        assert dumped["responseTimeMs"] == 12.5
        assert dumped["responseBody"] is None
