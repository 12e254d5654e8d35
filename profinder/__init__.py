"""
ProFinder relationship and messaging server.
"""
__version__ = "1.0.0"
