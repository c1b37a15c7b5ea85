"""Technical debt scoring and support analytics for product areas."""

__version__ = "0.1.0"
