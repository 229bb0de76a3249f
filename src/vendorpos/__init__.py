"""Point-of-sale checkout and billing for multi-tenant vendors."""

__version__ = "0.1.0"
