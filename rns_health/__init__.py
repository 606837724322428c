"""RNS Health — operational-health engine for a Reticulum installation."""

__version__ = "0.4.0"
