"""roomsync: room inventory shared by reservations, housekeeping and maintenance."""

__version__ = "0.1.0"
