from .tenancy import Organization, Store
from .inventory import Product, StockMovement
from .stocktakes import Stocktake, StocktakeItem

__all__ = [
    'Organization', 'Store',
    'Product', 'StockMovement',
    'Stocktake', 'StocktakeItem',
]
