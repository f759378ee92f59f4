from catalog.versioning.registry import (
    API_VERSION_QUERY_PARAM,
    ApiVersion,
    ApiVersionDescriptor,
    ApiVersionRegistry,
)

__all__ = [
    "API_VERSION_QUERY_PARAM",
    "ApiVersion",
    "ApiVersionDescriptor",
    "ApiVersionRegistry",
]
