"""
Vendor-prefix registry and random MAC address generator.
"""

__version__ = "0.1.0"
