"""
api/routes/v1/products.py -- Product catalog routes for the Products CMS REST API.

Routes (in registration order to avoid FastAPI path capture conflicts):
  GET    /products           -- list products (active only unless ?include_deleted=true)
  GET    /products/stats     -- counts per status over active products
  POST   /products           -- create product; 201
  GET    /products/{id}      -- product detail
  PUT    /products/{id}      -- partial update
  DELETE /products/{id}      -- soft delete

/products/stats is registered before /products/{product_id} or FastAPI would
try to parse "stats" as an integer id and answer 400.

The acting user's email is recorded as created_by / updated_by.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import ProductCreate, ProductOut, ProductUpdate, ok
from auth.dependencies import get_current_user
from auth.errors import NotFoundError, ValidationError
from auth.models import User
from catalog.models import Product
from catalog.store import ProductStore

# All product routes require authentication.
# Router-level dependency applies to every route registered on this router,
# so individual handlers that don't need the user object skip the parameter.
router = APIRouter(dependencies=[Depends(get_current_user)])


def _product_or_404(store: ProductStore, product_id: int) -> Product:
    product = store.get_product(product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


@router.get("/products")
def list_products(request: Request, include_deleted: bool = False) -> JSONResponse:
    store: ProductStore = request.app.state.product_store
    products = store.list_products(include_deleted=include_deleted)
    return JSONResponse(content=ok({"products": [ProductOut.from_product(p).model_dump() for p in products]}))


@router.get("/products/stats")
def product_stats(request: Request) -> JSONResponse:
    store: ProductStore = request.app.state.product_store
    return JSONResponse(content=ok({"stats": store.status_counts()}))


@router.post("/products", status_code=201)
def create_product(
    request: Request,
    body: ProductCreate,
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    """Create a product owned by the current user."""
    store: ProductStore = request.app.state.product_store
    product_id = store.create_product(
        Product(
            name=body.name,
            description=body.description,
            status=body.status.value,
            created_by=current_user.email,
        )
    )
    created = _product_or_404(store, product_id)
    return JSONResponse(
        status_code=201,
        content=ok({"product": ProductOut.from_product(created).model_dump()}, message="Product created"),
    )


@router.get("/products/{product_id}")
def get_product(request: Request, product_id: int) -> JSONResponse:
    store: ProductStore = request.app.state.product_store
    product = _product_or_404(store, product_id)
    return JSONResponse(content=ok({"product": ProductOut.from_product(product).model_dump()}))


@router.put("/products/{product_id}")
def update_product(
    request: Request,
    product_id: int,
    body: ProductUpdate,
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    """Apply the fields present in the body; omitted fields are untouched."""
    store: ProductStore = request.app.state.product_store
    changes = body.model_dump(exclude_none=True)
    if "status" in changes:
        changes["status"] = body.status.value
    if not changes:
        raise ValidationError("No fields to update")
    if not store.update_product(product_id, updated_by=current_user.email, **changes):
        raise NotFoundError("Product not found")
    updated = _product_or_404(store, product_id)
    return JSONResponse(
        content=ok({"product": ProductOut.from_product(updated).model_dump()}, message="Product updated")
    )


@router.delete("/products/{product_id}")
def delete_product(
    request: Request,
    product_id: int,
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    """Soft-delete a product. Deleting twice answers 404 the second time."""
    store: ProductStore = request.app.state.product_store
    if not store.soft_delete_product(product_id, deleted_by=current_user.email):
        raise NotFoundError("Product not found")
    return JSONResponse(content=ok(message="Product deleted"))
