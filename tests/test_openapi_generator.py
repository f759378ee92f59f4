"""Tests for per-version OpenAPI document generation."""

import json
import unittest

from catalog.api.catalog import create_catalog_routes
from catalog.openapi import DocumentGenerator, swagger_endpoints
from catalog.openapi.generator import DEPRECATED_SUFFIX, OPENAPI_VERSION, camel_case
from catalog.store import CatalogStore
from catalog.versioning import ApiVersion, ApiVersionRegistry
from models import AuthFilter, ProblemDetails, Product, RequirementKind, ResponseDescriptor, RouteDescriptor


def _catalog_generator(registry: ApiVersionRegistry | None = None) -> DocumentGenerator:
    registry = registry or ApiVersionRegistry()
    table = create_catalog_routes(CatalogStore(), registry)
    return DocumentGenerator(
        table.descriptors,
        registry,
        title="Catalog.API",
        description="Books.",
        schemas=[Product, ProblemDetails],
    )


class TestCamelCase(unittest.TestCase):
    def test_converts_snake_case(self) -> None:
        self.assertEqual(camel_case("product_id"), "productId")

    def test_leaves_other_names_alone(self) -> None:
        self.assertEqual(camel_case("api-version"), "api-version")
        self.assertEqual(camel_case("id"), "id")


class TestCatalogDocument(unittest.TestCase):
    def setUp(self) -> None:
        self.generator = _catalog_generator()
        self.document = self.generator.build("v1")

    def test_info(self) -> None:
        self.assertEqual(self.document["openapi"], OPENAPI_VERSION)
        self.assertEqual(
            self.document["info"],
            {"title": "Catalog.API", "description": "Books.", "version": "1.0"},
        )

    def test_paths_use_camel_case_placeholders(self) -> None:
        self.assertEqual(list(self.document["paths"]), ["/api/catalog", "/api/catalog/{productId}"])

    def test_list_operation(self) -> None:
        operation = self.document["paths"]["/api/catalog"]["get"]
        self.assertEqual(operation["operationId"], "CatalogGetProducts")
        self.assertEqual(operation["tags"], ["Catalog"])
        self.assertEqual(list(operation["responses"]), ["200", "500"])
        schema = operation["responses"]["200"]["content"]["application/json"]["schema"]
        self.assertEqual(
            schema, {"type": "array", "items": {"$ref": "#/components/schemas/Product"}}
        )
        self.assertEqual(operation["responses"]["500"], {"description": "Server Error"})

    def test_get_operation_parameters(self) -> None:
        operation = self.document["paths"]["/api/catalog/{productId}"]["get"]
        self.assertEqual(
            operation["parameters"],
            [
                {
                    "name": "productId",
                    "in": "path",
                    "required": True,
                    "schema": {"type": "integer", "format": "int32"},
                },
                {
                    "name": "api-version",
                    "in": "query",
                    "description": "The requested API version",
                    "required": False,
                    "schema": {"type": "string"},
                },
            ],
        )
        self.assertEqual(list(operation["responses"]), ["200", "404", "500"])
        not_found = operation["responses"]["404"]["content"]["application/json"]["schema"]
        self.assertEqual(not_found, {"$ref": "#/components/schemas/ProblemDetails"})

    def test_component_schemas(self) -> None:
        schemas = self.document["components"]["schemas"]
        self.assertEqual(list(schemas), sorted(schemas))
        self.assertIn("Product", schemas)
        self.assertIn("ProblemDetails", schemas)
        self.assertEqual(
            set(schemas["Product"]["properties"]),
            {"id", "name", "author", "description", "price"},
        )
        self.assertIn("exceptionDetails", schemas["ProblemDetails"]["properties"])

    def test_no_auth_responses_without_filters(self) -> None:
        for path in self.document["paths"].values():
            self.assertNotIn("401", path["get"]["responses"])
            self.assertNotIn("403", path["get"]["responses"])

    def test_unknown_group(self) -> None:
        self.assertIsNone(self.generator.build("v2"))
        self.assertIsNone(self.generator.render("v2"))

    def test_render_is_deterministic(self) -> None:
        first = self.generator.render("v1")
        rebuilt = _catalog_generator().render("v1")
        self.assertEqual(first, rebuilt)
        self.assertIs(self.generator.render("v1"), first)
        self.assertEqual(json.loads(first), self.document)


class TestVersionGroups(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = ApiVersionRegistry(deprecated=[ApiVersion(1, 0)])
        self.registry.declare(["1.0", "2.0"])
        ok = (ResponseDescriptor(status_code=200),)
        self.routes = [
            RouteDescriptor(name="Old", method="GET", path="/old", api_versions=("1.0",), responses=ok),
            RouteDescriptor(name="New", method="GET", path="/new", api_versions=("2",), responses=ok),
            RouteDescriptor(name="Neutral", method="GET", path="/neutral", responses=ok),
            RouteDescriptor(
                name="Secure",
                method="GET",
                path="/secure",
                api_versions=("2.0",),
                responses=ok,
                filters=(AuthFilter.authorize(RequirementKind.DENY_ANONYMOUS, RequirementKind.ROLES),),
            ),
        ]
        self.generator = DocumentGenerator(
            self.routes, self.registry, title="Test", description="Test API."
        )

    def test_group_names_newest_first(self) -> None:
        self.assertEqual(self.generator.group_names(), ["v2", "v1"])

    def test_routes_are_filtered_per_group(self) -> None:
        self.assertEqual(list(self.generator.build("v1")["paths"]), ["/neutral", "/old"])
        self.assertEqual(
            list(self.generator.build("v2")["paths"]), ["/neutral", "/new", "/secure"]
        )

    def test_deprecated_group_description(self) -> None:
        self.assertEqual(
            self.generator.build("v1")["info"]["description"],
            f"Test API. {DEPRECATED_SUFFIX}",
        )
        self.assertEqual(self.generator.build("v2")["info"]["description"], "Test API.")

    def test_auth_responses_are_synthesized(self) -> None:
        responses = self.generator.build("v2")["paths"]["/secure"]["get"]["responses"]
        self.assertEqual(list(responses), ["200", "401", "403"])
        self.assertEqual(responses["200"], {"description": "OK"})

    def test_no_components_without_schemas(self) -> None:
        self.assertNotIn("components", self.generator.build("v2"))

    def test_swagger_endpoints_follow_registry(self) -> None:
        self.assertEqual(
            swagger_endpoints(self.registry),
            [
                {"url": "/swagger/v2/swagger.json", "name": "Version 2.0"},
                {"url": "/swagger/v1/swagger.json", "name": "Version 1.0"},
            ],
        )


if __name__ == "__main__":
    unittest.main()
