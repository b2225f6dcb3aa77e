# Overview: Catalog collaborator for checkout and sync (prices, stock, snapshots).

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import Category, Product, PriceList, ProductPrice
from ..validation import parse_amount


class CatalogError(Exception):
    """Raised for catalog lookups that cannot be satisfied."""
    pass


SEED_CATEGORIES = [
    ("1", "Cremas", "🍦"),
    ("2", "Paletas", "🍡"),
    ("3", "Agua", "🧊"),
    ("4", "Postres", "🍰"),
    ("5", "Bebidas", "🥤"),
]

# (id, name, category_id, stock, mostrador, delivery, mayorista)
SEED_PRODUCTS = [
    ("1", "Chocolate", "1", 50, 400, 450, 300),
    ("2", "Vainilla", "1", 50, 400, 450, 300),
    ("3", "Fresa", "1", 45, 400, 450, 300),
    ("4", "Dulce de Leche", "1", 40, 450, 500, 350),
    ("5", "Menta Granizada", "1", 35, 450, 500, 350),
    ("6", "Limón", "3", 60, 300, 350, 250),
    ("7", "Maracuyá", "3", 40, 300, 350, 250),
    ("8", "Paleta Frutal", "2", 30, 250, 300, 200),
    ("9", "Paleta Crema", "2", 25, 300, 350, 250),
    ("10", "Sundae", "4", 20, 500, 550, 400),
    ("11", "Banana Split", "4", 15, 500, 600, 400),
    ("12", "Milkshake", "5", 30, 450, 500, 350),
]

SEED_PRICE_LISTS = [
    ("1", "Mostrador", "mostrador"),
    ("2", "Delivery", "delivery"),
    ("3", "Mayorista", "mayorista"),
]


def get_product(product_id: str) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise CatalogError(f"Product {product_id} not found")
    return product


def get_price_list(price_list_id: str) -> PriceList:
    price_list = db.session.get(PriceList, price_list_id)
    if not price_list:
        raise CatalogError(f"Price list {price_list_id} not found")
    return price_list


def get_price(product_id: str, price_list_id: str) -> Decimal:
    """Price of a product on a list; 0 when no price was ever set."""
    row = db.session.query(ProductPrice).filter_by(
        product_id=product_id,
        price_list_id=price_list_id,
    ).first()
    if row is None:
        return Decimal("0.00")
    return Decimal(row.price)


def set_product_price(product_id: str, price_list_id: str, price, *, commit: bool = True) -> ProductPrice:
    """Upsert the price of a product on one list."""
    amount = parse_amount(price, "price")
    row = db.session.query(ProductPrice).filter_by(
        product_id=product_id,
        price_list_id=price_list_id,
    ).first()
    if row is None:
        row = ProductPrice(product_id=product_id, price_list_id=price_list_id, price=amount)
        db.session.add(row)
    else:
        row.price = amount
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return row


def update_stock(product_id: str, delta: int) -> Product | None:
    """
    Apply a signed stock delta. Caller commits.

    Unknown products are skipped: a sale line may outlive its product.
    """
    product = db.session.get(Product, product_id)
    if product is None:
        return None
    product.stock = (product.stock or 0) + delta
    return product


def catalog_snapshot() -> dict:
    """Full catalog, in wire shape, for the sync body."""
    return {
        "products": [p.to_sync_dict() for p in db.session.query(Product).order_by(Product.id).all()],
        "categories": [c.to_sync_dict() for c in db.session.query(Category).order_by(Category.id).all()],
        "priceLists": [pl.to_sync_dict() for pl in db.session.query(PriceList).order_by(PriceList.id).all()],
        "productPrices": [pp.to_sync_dict() for pp in db.session.query(ProductPrice).order_by(ProductPrice.id).all()],
    }


def seed_catalog() -> dict:
    """
    Load the default shop catalog.

    Idempotent: rows that already exist (by id) are left untouched.
    """
    created = {"categories": 0, "products": 0, "price_lists": 0, "prices": 0}

    for cat_id, name, icon in SEED_CATEGORIES:
        if db.session.get(Category, cat_id) is None:
            db.session.add(Category(id=cat_id, name=name, icon=icon, active=True))
            created["categories"] += 1

    for pl_id, name, key in SEED_PRICE_LISTS:
        if db.session.get(PriceList, pl_id) is None:
            db.session.add(PriceList(id=pl_id, name=name, key=key, active=True))
            created["price_lists"] += 1

    db.session.flush()

    for prod_id, name, category_id, stock, *prices in SEED_PRODUCTS:
        if db.session.get(Product, prod_id) is None:
            db.session.add(Product(id=prod_id, name=name, category_id=category_id, stock=stock, unit="unidad"))
            created["products"] += 1
            db.session.flush()
            for (pl_id, _name, _key), price in zip(SEED_PRICE_LISTS, prices):
                set_product_price(prod_id, pl_id, price, commit=False)
                created["prices"] += 1

    db.session.commit()
    return created
