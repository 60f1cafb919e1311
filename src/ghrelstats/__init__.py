"""GitHub release download statistics with a static and a live dashboard."""

__version__ = "0.1.0"
