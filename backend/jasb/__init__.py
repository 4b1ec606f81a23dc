"""JASB: community wagering ledger and bet-resolution engine."""

__version__ = "0.1.0"
__author__ = "JASB Team"

__all__ = ["__version__", "__author__"]
