"""HTTP service for recording shop orders and their drop-shipping details."""

__version__ = "0.1.0"