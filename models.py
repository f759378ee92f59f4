from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, WithJsonSchema, model_validator

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


class Product(BaseModel):
    """
    A catalog entry. Prices are decimals, never binary floats, and go over the
    wire as JSON numbers carrying the exact decimal digits.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(gt=0)
    name: str
    author: str
    description: str
    price: Annotated[Decimal, WithJsonSchema({"type": "number", "format": "decimal"})]


class ExceptionDetail(BaseModel):
    type: str
    message: str
    stack_trace: list[str] = Field(default_factory=list, alias="stackTrace")

    model_config = ConfigDict(populate_by_name=True)


class ProblemDetails(BaseModel):
    """
    RFC 7807 error body. `type` and `title` name the kind of failure,
    `detail` carries the human-readable message for this occurrence.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: str = "about:blank"
    title: str
    status: int
    detail: str | None = None
    instance: str | None = None
    exception_details: list[ExceptionDetail] | None = Field(
        default=None, alias="exceptionDetails"
    )


class RequirementKind(str, Enum):
    """Kinds of authorization requirement an Authorize filter can carry."""

    DENY_ANONYMOUS = "deny_anonymous"
    CLAIMS = "claims"
    ROLES = "roles"
    NAME = "name"
    OPERATION = "operation"
    ASSERTION = "assertion"


class AuthFilter(BaseModel):
    """
    One entry in a route's authorization filter chain.

    `allow_anonymous` filters are markers; `authorize` filters carry the
    requirement kinds of their policy.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["allow_anonymous", "authorize"]
    requirements: tuple[RequirementKind, ...] = ()

    @model_validator(mode="after")
    def _marker_has_no_requirements(self) -> "AuthFilter":
        if self.kind == "allow_anonymous" and self.requirements:
            raise ValueError("allow_anonymous filters cannot carry requirements")
        return self

    @classmethod
    def allow_anonymous(cls) -> "AuthFilter":
        return cls(kind="allow_anonymous")

    @classmethod
    def authorize(cls, *requirements: RequirementKind) -> "AuthFilter":
        return cls(kind="authorize", requirements=tuple(requirements))


class ParameterDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    location: Literal["path", "query", "header"]
    schema_type: str = "string"
    schema_format: str | None = None
    required: bool = False
    description: str = ""


class ResponseDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    status_code: int
    description: str = ""
    # Name of a component schema, e.g. "Product" or "ProblemDetails".
    schema_ref: str | None = None
    is_array: bool = False


class RouteDescriptor(BaseModel):
    """
    Metadata captured when a route is registered. The documentation generator
    reads only these descriptors, never the live route objects.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    method: HttpMethod
    path: str
    summary: str = ""
    description: str = ""
    tags: tuple[str, ...] = ()
    api_versions: tuple[str, ...] = ()
    parameters: tuple[ParameterDescriptor, ...] = ()
    responses: tuple[ResponseDescriptor, ...] = ()
    # Ordered least-specific (global) to most-specific (action).
    filters: tuple[AuthFilter, ...] = ()

    def declared_status_codes(self) -> set[int]:
        return {r.status_code for r in self.responses}

    def with_responses(self, responses: list[ResponseDescriptor]) -> "RouteDescriptor":
        return self.model_copy(update={"responses": tuple(responses)})


class HealthReport(BaseModel):
    status: Literal["Healthy", "Degraded", "Unhealthy"]
    entries: dict[str, Any] = Field(default_factory=dict)
