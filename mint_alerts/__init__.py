"""Notification delivery and budget-alert pipeline for Mint Replica Lite."""

__version__ = "0.1.0"
