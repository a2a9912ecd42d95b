"""clinicsync - connection and sync status coordinator for the clinical records client."""

__version__ = "0.1.0"
