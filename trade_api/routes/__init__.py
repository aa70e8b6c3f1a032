from trade_api.routes import bookings, communications, milestones, packing_lists

__all__ = ["bookings", "communications", "milestones", "packing_lists"]
