"""
Catalog resource: list all products and get one by id.

`{product_id}` carries an integer route constraint, so a non-numeric id never
reaches the handler and is answered 404 by routing. An unknown numeric id is
answered here with a 404 problem body.
"""
from __future__ import annotations

import logging

from fastapi import Depends, Request
from fastapi.responses import Response

from catalog.api.routes import RouteTable
from catalog.pipeline.negotiation import json_response, negotiated_media_type
from catalog.pipeline.problem_details import build_problem, problem_response
from catalog.store import CatalogStore
from catalog.versioning import API_VERSION_QUERY_PARAM, ApiVersion, ApiVersionRegistry
from models import ParameterDescriptor, Product, ResponseDescriptor

logger = logging.getLogger(__name__)

API_VERSION_1 = "1.0"

SERVER_ERROR = ResponseDescriptor(status_code=500, description="Server Error")


def _product_body(product: Product) -> dict:
    # Python mode keeps price a Decimal so render_json writes it as a number.
    return product.model_dump()


def create_catalog_routes(
    store: CatalogStore,
    registry: ApiVersionRegistry,
    *,
    pretty: bool = False,
    logger: logging.Logger = logger,
) -> RouteTable:
    table = RouteTable(
        prefix="/api/catalog",
        tag="Catalog",
        registry=registry,
        api_versions=[API_VERSION_1],
        default_responses=[SERVER_ERROR],
    )

    def select_version(request: Request) -> ApiVersion:
        return registry.resolve(request.query_params.get(API_VERSION_QUERY_PARAM))

    versioned = [Depends(select_version)]

    @table.get(
        "",
        name="CatalogGetProducts",
        dependencies=versioned,
        summary="Returns all the products in the catalog",
        responses=[
            ResponseDescriptor(
                status_code=200,
                description="Gets all the products",
                schema_ref="Product",
                is_array=True,
            )
        ],
    )
    def get_products(
        media_type: str = Depends(negotiated_media_type),
    ) -> Response:
        products = [_product_body(p) for p in store.list_all()]
        logger.info("Handled %s", "CatalogGetProducts", extra={"operation": "CatalogGetProducts"})
        return json_response(
            products,
            media_type=media_type,
            pretty=pretty,
            headers=registry.report_headers(),
        )

    @table.get(
        "/{product_id:int}",
        name="CatalogGetProduct",
        dependencies=versioned,
        summary="Returns a specific product in the catalog",
        parameters=[
            ParameterDescriptor(
                name="product_id",
                location="path",
                schema_type="integer",
                schema_format="int32",
                required=True,
            )
        ],
        responses=[
            ResponseDescriptor(
                status_code=200,
                description="Get a specific product with the provided productId",
                schema_ref="Product",
            ),
            ResponseDescriptor(
                status_code=404,
                description="Could not find the product with the provided productId",
                schema_ref="ProblemDetails",
            ),
        ],
    )
    def get_product(
        request: Request,
        product_id: int,
        media_type: str = Depends(negotiated_media_type),
    ) -> Response:
        product = store.get_by_id(product_id)
        if product is None:
            problem = build_problem(
                404,
                detail=f"Could not find the product with id {product_id}.",
                instance=request.url.path,
            )
            return problem_response(problem, pretty=pretty, headers=registry.report_headers())
        logger.info("Handled %s", "CatalogGetProduct", extra={"operation": "CatalogGetProduct"})
        return json_response(
            _product_body(product),
            media_type=media_type,
            pretty=pretty,
            headers=registry.report_headers(),
        )

    return table
