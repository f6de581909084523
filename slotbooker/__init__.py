"""
slotbooker - appointment slot availability and booking sagas.
"""

__version__ = "0.1.0"
