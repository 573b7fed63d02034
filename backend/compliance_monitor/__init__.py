"""Compliance Monitor - complaint-to-case enforcement backend"""

__version__ = "1.0.0"
