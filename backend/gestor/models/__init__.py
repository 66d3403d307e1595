from .parties import Supplier, Customer
from .inventory import Product, Purchase
from .sales import Sale, SaleItem
from .payments import CustomerPayment, PaymentAllocation, SupplierPayment
from .cash import Expense, CashTransaction

__all__ = [
    'Supplier', 'Customer',
    'Product', 'Purchase',
    'Sale', 'SaleItem',
    'CustomerPayment', 'PaymentAllocation', 'SupplierPayment',
    'Expense', 'CashTransaction',
]
