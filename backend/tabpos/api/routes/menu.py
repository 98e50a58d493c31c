"""Menu catalog routes."""

from typing import Optional

from fastapi import APIRouter, Query, Request

from tabpos.core.rate_limit import limiter
from tabpos.core.rbac import CanManageMenu
from tabpos.core.responses import list_response, success_response
from tabpos.core.tenancy import CurrentTenant
from tabpos.db.session import DbSession
from tabpos.schemas.menu import (
    AvailabilityUpdate, CategoryCreate, CategoryResponse, CategoryUpdate, MenuResponse,
    OptionCreate, OptionResponse, ProductCreate, ProductResponse, ProductUpdate,
)
from tabpos.services.menu_service import MenuService

router = APIRouter()


@router.get("/", response_model=MenuResponse)
@limiter.limit("120/minute")
def get_menu(request: Request, tenant: CurrentTenant, db: DbSession,
             search: Optional[str] = Query(None, max_length=100)):
    """Public menu: categories with available products and their options."""
    return MenuService(db, tenant.id).menu(search=search)


@router.get("/categories")
def list_categories(tenant: CurrentTenant, db: DbSession):
    categories = MenuService(db, tenant.id).list_categories()
    return list_response([CategoryResponse.model_validate(c) for c in categories])


@router.get("/products")
def list_products(
    tenant: CurrentTenant,
    db: DbSession,
    current_user: CanManageMenu,
    category_id: Optional[int] = None,
    search: Optional[str] = Query(None, max_length=100),
):
    """All products including unavailable ones (menu management view)."""
    products = MenuService(db, tenant.id).list_products(
        category_id=category_id, search=search, include_unavailable=True,
    )
    return list_response([ProductResponse.model_validate(p) for p in products])


@router.post("/categories", response_model=CategoryResponse, status_code=201)
def create_category(body: CategoryCreate, current_user: CanManageMenu, db: DbSession):
    return MenuService(db, current_user.tenant_id).create_category(body.name, body.sort_order)


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
def update_category(category_id: int, body: CategoryUpdate, current_user: CanManageMenu, db: DbSession):
    return MenuService(db, current_user.tenant_id).update_category(
        category_id, **body.model_dump(exclude_unset=True),
    )


@router.delete("/categories/{category_id}")
def delete_category(category_id: int, current_user: CanManageMenu, db: DbSession):
    MenuService(db, current_user.tenant_id).delete_category(category_id)
    return success_response("Category deleted")


@router.post("/products", response_model=ProductResponse, status_code=201)
def create_product(body: ProductCreate, current_user: CanManageMenu, db: DbSession):
    return MenuService(db, current_user.tenant_id).create_product(**body.model_dump())


@router.patch("/products/{product_id}", response_model=ProductResponse)
def update_product(product_id: int, body: ProductUpdate, current_user: CanManageMenu, db: DbSession):
    return MenuService(db, current_user.tenant_id).update_product(
        product_id, **body.model_dump(exclude_unset=True),
    )


@router.put("/products/{product_id}/availability", response_model=ProductResponse)
def set_availability(product_id: int, body: AvailabilityUpdate, current_user: CanManageMenu, db: DbSession):
    return MenuService(db, current_user.tenant_id).set_availability(product_id, body.is_available)


@router.delete("/products/{product_id}")
def delete_product(product_id: int, current_user: CanManageMenu, db: DbSession):
    MenuService(db, current_user.tenant_id).delete_product(product_id)
    return success_response("Product deleted")


@router.post("/products/{product_id}/options", response_model=OptionResponse, status_code=201)
def add_option(product_id: int, body: OptionCreate, current_user: CanManageMenu, db: DbSession):
    return MenuService(db, current_user.tenant_id).add_option(
        product_id, body.name, body.extra_price, body.sort_order,
    )


@router.delete("/products/{product_id}/options/{option_id}")
def delete_option(product_id: int, option_id: int, current_user: CanManageMenu, db: DbSession):
    MenuService(db, current_user.tenant_id).delete_option(product_id, option_id)
    return success_response("Option deleted")
