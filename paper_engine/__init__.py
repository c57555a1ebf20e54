"""
Paper Trading Engine
Indicator-driven trade lifecycle management for a crypto paper trading board
"""

__version__ = "0.1.0"
