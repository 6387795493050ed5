"""Multi-gateway payment reconciliation for service bookings."""

__version__ = "0.1.0"
