"""
                LetsOrder

Multi-tenant restaurant ordering backend: operators manage menus, tables
and staff access; diners order from a table's QR code link.
"""

__version__ = "1.0.0"
