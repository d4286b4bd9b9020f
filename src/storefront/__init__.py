"""storefront - order lifecycle and settlement engine for a UPI-paid retail shop."""

__version__ = "0.1.0"
