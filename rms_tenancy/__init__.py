"""
RMS tenancy core - tenant isolation boundary for the restaurant management platform
"""

__version__ = "1.0.0"
