from .seller import Base, Seller
from .vehicle import Vehicle

__all__ = [
    "Base",
    "Seller",
    "Vehicle",
]
