"""stepup - Step-up authentication decision flow."""

__version__ = "0.1.0"
