from .composition_service import TableCompositionService
from .layout_service import LayoutService
from .table_service import TableService

__all__ = ["LayoutService", "TableCompositionService", "TableService"]
