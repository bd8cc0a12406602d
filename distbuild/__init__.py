"""
distbuild

Builds the source packages of a multi-repository distribution in
dependency order.
"""

__version__ = "0.1.0"
