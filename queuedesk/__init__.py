"""Walk-in service center ticket dispatch."""

__version__ = "0.1.0"
