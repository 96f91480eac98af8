"""Building blocks for an application install daemon: event loop, call chains, JSON and app metadata, ipk extraction and installer tool control."""

__version__ = "1.0.0"