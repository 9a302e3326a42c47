"""purgehook - cache invalidation webhook dispatcher."""

__version__ = "0.1.0"
