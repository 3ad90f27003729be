from .inventory import Product, StockTransition
from .returns import Return

__all__ = [
    'Product', 'StockTransition',
    'Return',
]
