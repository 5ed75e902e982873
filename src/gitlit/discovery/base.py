"""Data models for discovered endpoints.

Every pipeline stage (discovery, path mapping, test execution, Postman
export) passes these records along.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]
HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")
BODY_METHODS = ("POST", "PUT", "PATCH")


class EndpointParameters(BaseModel):
    """Best-effort names of the inputs a handler reads."""

    query: list[str] = Field(default_factory=list)
    body: list[str] = Field(default_factory=list)  # ["body"] when a JSON body is read
    headers: list[str] = Field(default_factory=list)  # never filled by the scanner


class EndpointRecord(BaseModel):
    """A single route found in a repository."""

    model_config = ConfigDict(frozen=True)

    method: HttpMethod
    path: str  # /api/users/[id] before mapping, /api/users/:id after
    file: str = ""  # source file the route was found in
    parameters: EndpointParameters = Field(default_factory=EndpointParameters)

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value):
        return value.upper() if isinstance(value, str) else value
