"""SwiftShip parcel booking and tracking."""

__version__ = "0.1.0"
