from .dbscan_service import DBSCANGroupingService

__all__ = ["DBSCANGroupingService"]
