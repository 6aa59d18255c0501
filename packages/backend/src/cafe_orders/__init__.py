"""Café Orders — ordering backend for a small café.

Customers submit orders against the menu, staff move them through the
kitchen lifecycle, and every change is pushed to connected clients
over WebSocket as it happens.
"""

__version__ = "0.1.0"
