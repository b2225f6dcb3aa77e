from __future__ import annotations

from ..extensions import db
from .common import new_id, Money, money_out


class Category(db.Model):
    """Product category shown as a tab on the sale screen."""
    __tablename__ = "categories"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=False)
    icon = db.Column(db.String(16), nullable=False, default="")
    active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "icon": self.icon, "active": self.active}

    def to_sync_dict(self) -> dict:
        return self.to_dict()


class Product(db.Model):
    """
    Sellable product.

    Stock is a plain counter moved by sales (-qty) and sale reversals (+qty).
    It is allowed to go negative so that a reversal always lands back on the
    exact pre-sale value.
    """
    __tablename__ = "products"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=False)
    category_id = db.Column(db.String(36), db.ForeignKey("categories.id"), nullable=True, index=True)
    stock = db.Column(db.Integer, nullable=False, default=0)
    unit = db.Column(db.String(32), nullable=False, default="unidad")
    active = db.Column(db.Boolean, nullable=False, default=True)
    image = db.Column(db.String(255), nullable=True)

    category = db.relationship("Category", backref=db.backref("products", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category_id": self.category_id,
            "stock": self.stock,
            "unit": self.unit,
            "active": self.active,
            "image": self.image,
        }

    def to_sync_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "categoryId": self.category_id,
            "stock": self.stock,
            "unit": self.unit,
            "active": self.active,
            "image": self.image,
        }


class PriceList(db.Model):
    """Named price list (mostrador, delivery, mayorista)."""
    __tablename__ = "price_lists"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=False)
    key = db.Column(db.String(64), nullable=False, unique=True)
    active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "key": self.key, "active": self.active}

    def to_sync_dict(self) -> dict:
        return self.to_dict()


class ProductPrice(db.Model):
    """Price of one product on one price list."""
    __tablename__ = "product_prices"
    __table_args__ = (
        db.UniqueConstraint("product_id", "price_list_id", name="uq_product_prices_product_list"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)
    price_list_id = db.Column(db.String(36), db.ForeignKey("price_lists.id"), nullable=False, index=True)
    price = Money(nullable=False, default=0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "price_list_id": self.price_list_id,
            "price": money_out(self.price),
        }

    def to_sync_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "priceListId": self.price_list_id,
            "price": money_out(self.price),
        }
