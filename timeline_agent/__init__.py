"""
Timeline Agent: connectors that stream remote records as normalized items.
"""

__version__ = "1.0.0"
