"""
Trade Kernel - shipment lifecycle core.

Coordinates exporter and importer through an ordered shipment lifecycle:
- Milestone progression with a strict predecessor chain
- Atomic cascade to orders, invoices and the communication log
- Keyed tamper-seal for packing lists handed over out-of-band
- Compact booking status codes with readable labels at the boundary
"""

__version__ = "0.1.0"
