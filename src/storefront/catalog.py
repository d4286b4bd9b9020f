"""Product catalog access."""

from decimal import Decimal

from .data_store import DataStore
from .errors import ProductNotFoundError, ValidationError
from .models import Product


class Catalog:
    """Browse and look up products in the products table."""

    def __init__(self, store: DataStore):
        self.store = store

    def list_products(
        self,
        category: str | None = None,
        search: str | None = None,
    ) -> list[Product]:
        """
        List products sorted by name.

        Args:
            category: Only products in this category (case-insensitive).
            search: Substring to match in name or description (case-insensitive).
        """
        products = [Product.from_dict(r) for r in self.store.select("products")]

        if category:
            wanted = category.lower()
            products = [p for p in products if p.category.lower() == wanted]

        if search:
            needle = search.lower()
            products = [
                p for p in products
                if needle in p.name.lower() or needle in p.description.lower()
            ]

        products.sort(key=lambda p: p.name.lower())
        return products

    def get_product(self, product_id: str) -> Product:
        """
        Get a product by ID.

        Raises:
            ProductNotFoundError: If product doesn't exist.
        """
        row = self.store.get("products", product_id)
        if row is None:
            raise ProductNotFoundError(product_id)
        return Product.from_dict(row)

    def list_categories(self) -> list[str]:
        return sorted({p.category for p in self.list_products() if p.category})

    def add_product(
        self,
        name: str,
        price: Decimal | int | str,
        description: str = "",
        category: str = "",
        image_url: str = "",
        stock: int = 0,
    ) -> Product:
        """Add a product to the catalog."""
        if not name.strip():
            raise ValidationError("name", "Product name is required.")
        try:
            product = Product.create(
                name=name.strip(),
                price=price,
                description=description,
                category=category,
                image_url=image_url,
                stock=stock,
            )
        except ValueError as e:
            raise ValidationError("price", str(e))
        if product.price < 0:
            raise ValidationError("price", "Price cannot be negative.")
        if product.stock < 0:
            raise ValidationError("stock", "Stock cannot be negative.")
        self.store.insert("products", product.to_dict())
        return product
