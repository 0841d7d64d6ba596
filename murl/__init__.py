"""
murl - a template driven HTTP redirect service.

Routes are declared in configuration, compiled once at startup and served as
``GET`` endpoints answering with ``307 Temporary Redirect``.
"""

__version__ = "0.1.0"
