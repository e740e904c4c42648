"""Core data models for request templating."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

Context = dict[str, str]
"""Per-iteration variable store: variable name to string value."""

DEFAULT_CONTENT_TYPE = "application/json"
VALID_BODY_KEY = "SuccessRequestBody"


class RequestBody(BaseModel):
    """A string HTTP body with its content type."""

    content_type: str = Field(default=DEFAULT_CONTENT_TYPE, description="Content-Type of the body")
    body: str = Field(default="", description="Serialized body string")


class Request(BaseModel):
    """An outgoing HTTP request before dispatch.

    Headers and query parameters are flat string mappings. Values may be
    ``@token@`` placeholders that are resolved from the context during
    request preparation; the URL may start with an ``@baseKey@`` prefix.
    """

    method: str = Field(default="GET", description="HTTP method: GET, POST, etc.")
    url: str = Field(description="Request URL, optionally starting with @contextKey@")
    headers: dict[str, str] = Field(default_factory=dict, description="Request headers")
    query_params: dict[str, str] = Field(
        default_factory=dict, description="Query-string parameters"
    )
    body: RequestBody | None = Field(default=None, description="Optional request body")


class PluginParameters(BaseModel):
    """Literal parameters supplied alongside each request.

    Accepts both the host parameter names (``VariableRequestBody``,
    ``ContentType``, ``SignRequest``) and their snake_case forms.
    """

    model_config = ConfigDict(populate_by_name=True)

    variable_request_body: str | None = Field(
        default=None,
        alias="VariableRequestBody",
        description="Partial or complete JSON body template overriding the valid body",
    )
    content_type: str | None = Field(
        default=None,
        alias="ContentType",
        description="Content-Type for the generated body (application/json when unset)",
    )
    sign_request: bool = Field(
        default=False,
        alias="SignRequest",
        description="Build the JSON body and sign the request before dispatch",
    )

    @property
    def has_variable_body(self) -> bool:
        """Whether a non-blank partial body template was supplied."""
        return bool(self.variable_request_body and self.variable_request_body.strip())
