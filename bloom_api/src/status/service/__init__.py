from .status_service import status_service

__all__ = ["status_service"]
