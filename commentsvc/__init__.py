"""HTTP endpoint for post comments that stores changes and publishes domain events."""

__version__ = "0.1.0"