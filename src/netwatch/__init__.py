"""NetWatch — host connection monitoring with explainable risk classification."""

__version__ = "0.1.0"
