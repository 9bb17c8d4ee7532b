"""authorscout - incremental author discovery crawler."""

__version__ = "0.1.0"
