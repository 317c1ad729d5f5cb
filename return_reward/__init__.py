"""Return&Reward: lost-and-found coordination service."""

__version__ = "1.0.0"
