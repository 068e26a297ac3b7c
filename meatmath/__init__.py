"""
MeatMath Pro API

Multi-tenant processing-shop backend. Every organization is an isolated
tenant; access to its records is decided by the organization-scoped
access control service in meatmath.core.access_control.
"""

__version__ = "1.0.0"
