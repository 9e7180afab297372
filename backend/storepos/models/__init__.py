from .tenancy import Store
from .accounts import Manager, CashierAccount, JoinRequest
from .inventory import Product, InventoryBatch
from .sales import Sale, SaleItem, Payment, PartialPaymentCustomer
from .expenses import Expense
from .documents import DocumentSequence

__all__ = [
    'Store',
    'Manager', 'CashierAccount', 'JoinRequest',
    'Product', 'InventoryBatch',
    'Sale', 'SaleItem', 'Payment', 'PartialPaymentCustomer',
    'Expense',
    'DocumentSequence',
]
