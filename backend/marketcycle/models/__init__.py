from .catalog import ReferenceProduct
from .cycles import Supplier, Cycle, ProductInCycle, new_product_id
from .markets import Market, MarketDeliveryPoint, market_products
from .reports import ExpiredProductEntry
from .schedule import HarvestPlan

__all__ = [
    'ReferenceProduct',
    'Supplier', 'Cycle', 'ProductInCycle', 'new_product_id',
    'Market', 'MarketDeliveryPoint', 'market_products',
    'ExpiredProductEntry',
    'HarvestPlan',
]
