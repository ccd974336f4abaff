from .tenancy import Store
from .auth import Cashier, SessionToken
from .catalog import Product
from .sales import Transaction, TransactionItem
from .settlements import Settlement
from .documents import Document

__all__ = [
    'Store',
    'Cashier', 'SessionToken',
    'Product',
    'Transaction', 'TransactionItem',
    'Settlement',
    'Document',
]
