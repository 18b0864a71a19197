# Services
from .ticker import SharedTicker

__all__ = ["SharedTicker"]
