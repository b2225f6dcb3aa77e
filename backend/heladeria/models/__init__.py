from .catalog import Category, Product, PriceList, ProductPrice
from .registers import CashRegister, CashMovement
from .sales import Sale, SaleItem, SalePayment
from .settings import Setting

__all__ = [
    'Category', 'Product', 'PriceList', 'ProductPrice',
    'CashRegister', 'CashMovement',
    'Sale', 'SaleItem', 'SalePayment',
    'Setting',
]
