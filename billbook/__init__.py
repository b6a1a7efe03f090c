"""billbook: billing, stock and party ledger for a small trading business."""

__version__ = "0.1.0"
