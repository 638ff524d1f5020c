"""Order tracking backend: PDF import, production and dispatch follow-up."""

__version__ = "0.1.0"
