from .catalog import Company, Customer, Supplier, PackageType, ProductType, Package, Product
from .stock import StockCategory, StockItem
from .sales import SaleTransaction, SaleItem
from .invoices import MasterInvoice, InvoiceItem, Invoice, InvoiceStockItem
from .documents import Quotation, QuotationProduct, ProformaInvoice, ProformaProduct
from .cashpower import CashPowerTransaction
from .auth import User, UserPermission

__all__ = [
    'Company', 'Customer', 'Supplier', 'PackageType', 'ProductType', 'Package', 'Product',
    'StockCategory', 'StockItem',
    'SaleTransaction', 'SaleItem',
    'MasterInvoice', 'InvoiceItem', 'Invoice', 'InvoiceStockItem',
    'Quotation', 'QuotationProduct', 'ProformaInvoice', 'ProformaProduct',
    'CashPowerTransaction',
    'User', 'UserPermission',
]
