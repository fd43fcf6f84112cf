"""RadioCalico - song ratings backend for the web radio player."""

__version__ = "0.1.0"
