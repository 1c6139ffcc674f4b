from .catalog import Shop, Product
from .inventory import StockRow, StockTransaction
from .sales import Sale, SaleItem, Payment
from .documents import StockTransfer, DocumentSequence
from .quotations import Quotation, QuotationItem

__all__ = [
    'Shop', 'Product',
    'StockRow', 'StockTransaction',
    'Sale', 'SaleItem', 'Payment',
    'StockTransfer', 'DocumentSequence',
    'Quotation', 'QuotationItem',
]
