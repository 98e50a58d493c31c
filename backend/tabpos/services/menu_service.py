"""Menu catalog service."""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from tabpos.core.exceptions import NotFound, ValidationFailed
from tabpos.models.menu import Category, Product, ProductOption

logger = logging.getLogger(__name__)


class MenuService:
    def __init__(self, db: Session, tenant_id: int):
        self.db = db
        self.tenant_id = tenant_id

    # ========== READ ==========

    def list_categories(self) -> List[Category]:
        return (
            self.db.query(Category)
            .filter(Category.tenant_id == self.tenant_id)
            .order_by(Category.sort_order, Category.id)
            .all()
        )

    def list_products(
        self,
        category_id: Optional[int] = None,
        search: Optional[str] = None,
        include_unavailable: bool = False,
    ) -> List[Product]:
        query = (
            self.db.query(Product)
            .options(selectinload(Product.options))
            .filter(Product.tenant_id == self.tenant_id)
        )
        if not include_unavailable:
            query = query.filter(Product.is_available.is_(True))
        if category_id is not None:
            query = query.filter(Product.category_id == category_id)
        if search:
            query = query.filter(func.lower(Product.name).contains(search.strip().lower()))
        return query.order_by(Product.sort_order, Product.name).all()

    def menu(self, search: Optional[str] = None) -> dict:
        """Categories with their available products, as the customer menu shows them."""
        products = self.list_products(search=search)
        by_category: Dict[Optional[int], List[Product]] = {}
        for product in products:
            by_category.setdefault(product.category_id, []).append(product)
        sections = [
            {"category": category, "products": by_category.get(category.id, [])}
            for category in self.list_categories()
        ]
        if by_category.get(None):
            sections.append({"category": None, "products": by_category[None]})
        return {"sections": sections, "product_count": len(products)}

    def get_product(self, product_id: int) -> Product:
        product = (
            self.db.query(Product)
            .filter(Product.id == product_id, Product.tenant_id == self.tenant_id)
            .first()
        )
        if product is None:
            raise NotFound("Product", product_id)
        return product

    def available_products(self, product_ids: Iterable[int]) -> Dict[int, Product]:
        """Look up orderable products; any unknown or unavailable id is rejected."""
        wanted = set(product_ids)
        products = (
            self.db.query(Product)
            .options(selectinload(Product.options))
            .filter(
                Product.tenant_id == self.tenant_id,
                Product.id.in_(wanted),
                Product.is_available.is_(True),
            )
            .all()
        )
        found = {p.id: p for p in products}
        missing = wanted - set(found)
        if missing:
            raise ValidationFailed(
                f"Products not available: {', '.join(str(m) for m in sorted(missing))}"
            )
        return found

    # ========== CATEGORIES ==========

    def _get_category(self, category_id: int) -> Category:
        category = (
            self.db.query(Category)
            .filter(Category.id == category_id, Category.tenant_id == self.tenant_id)
            .first()
        )
        if category is None:
            raise NotFound("Category", category_id)
        return category

    def create_category(self, name: str, sort_order: int = 0) -> Category:
        if not (name or "").strip():
            raise ValidationFailed("Category name is required")
        category = Category(tenant_id=self.tenant_id, name=name.strip(), sort_order=sort_order)
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def update_category(self, category_id: int, **changes) -> Category:
        category = self._get_category(category_id)
        if "name" in changes and changes["name"] is not None and not changes["name"].strip():
            raise ValidationFailed("Category name is required")
        for key, value in changes.items():
            if value is not None:
                setattr(category, key, value)
        self.db.commit()
        self.db.refresh(category)
        return category

    def delete_category(self, category_id: int) -> None:
        """Delete a category; its products become uncategorised."""
        category = self._get_category(category_id)
        for product in category.products:
            product.category_id = None
        self.db.delete(category)
        self.db.commit()

    # ========== PRODUCTS ==========

    def create_product(self, **fields) -> Product:
        if not (fields.get("name") or "").strip():
            raise ValidationFailed("Product name is required")
        if fields.get("category_id") is not None:
            self._get_category(fields["category_id"])
        options = fields.pop("options", None) or []
        try:
            product = Product(tenant_id=self.tenant_id, **fields)
            for index, option in enumerate(options):
                product.options.append(ProductOption(
                    tenant_id=self.tenant_id,
                    name=option["name"],
                    extra_price=option.get("extra_price", 0),
                    sort_order=option.get("sort_order", index),
                ))
        except ValueError as e:
            raise ValidationFailed(str(e))
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)
        logger.info(f"Product created: {product.name} ({product.price})")
        return product

    def update_product(self, product_id: int, **changes) -> Product:
        product = self.get_product(product_id)
        if changes.get("category_id") is not None:
            self._get_category(changes["category_id"])
        if "name" in changes and changes["name"] is not None and not changes["name"].strip():
            raise ValidationFailed("Product name is required")
        try:
            for key, value in changes.items():
                if value is not None:
                    setattr(product, key, value)
        except ValueError as e:
            self.db.rollback()
            raise ValidationFailed(str(e))
        self.db.commit()
        self.db.refresh(product)
        return product

    def set_availability(self, product_id: int, available: bool) -> Product:
        return self.update_product(product_id, is_available=available)

    def delete_product(self, product_id: int) -> None:
        self.db.delete(self.get_product(product_id))
        self.db.commit()

    # ========== OPTIONS ==========

    def add_option(self, product_id: int, name: str, extra_price=0, sort_order: int = 0) -> ProductOption:
        product = self.get_product(product_id)
        if not (name or "").strip():
            raise ValidationFailed("Option name is required")
        try:
            option = ProductOption(
                tenant_id=self.tenant_id, product_id=product.id, name=name.strip(),
                extra_price=extra_price, sort_order=sort_order,
            )
        except ValueError as e:
            raise ValidationFailed(str(e))
        self.db.add(option)
        self.db.commit()
        self.db.refresh(option)
        return option

    def delete_option(self, product_id: int, option_id: int) -> None:
        option = (
            self.db.query(ProductOption)
            .filter(
                ProductOption.id == option_id,
                ProductOption.product_id == product_id,
                ProductOption.tenant_id == self.tenant_id,
            )
            .first()
        )
        if option is None:
            raise NotFound("Option", option_id)
        self.db.delete(option)
        self.db.commit()
