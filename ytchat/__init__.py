"""ytchat - Live chat harvester for YouTube streams."""

__version__ = "0.1.0"
