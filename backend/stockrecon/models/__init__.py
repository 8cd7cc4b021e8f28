from .catalog import Product
from .stock import StockSnapshot
from .transfers import TransferLogEntry

__all__ = [
    'Product',
    'StockSnapshot',
    'TransferLogEntry',
]
