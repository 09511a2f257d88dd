"""
sqlstress - sustained query load generator for analytic SQL engines.
"""

__version__ = "1.0.0"
