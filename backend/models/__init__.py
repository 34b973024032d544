from models.app_config import AppConfig
from models.audit_log import AuditLog
from models.parties import Party
from models.material_categories import MaterialCategory
from models.units import Unit
from models.materials import Material
from models.orders import Order, OrderStatus
from models.order_items import OrderItem
from models.raw_material_deductions import RawMaterialDeduction
from models.stock_transactions import StockTransaction
from models.order_counter import OrderCounter

__all__ = ['AppConfig', 'AuditLog', 'Material', 'MaterialCategory', 'Order', 'OrderCounter', 'OrderItem', 'OrderStatus', 'Party', 'RawMaterialDeduction', 'StockTransaction', 'Unit',]
