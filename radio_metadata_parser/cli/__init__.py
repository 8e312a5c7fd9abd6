"""
Command line entry point
"""

from .radio_cli import main

__all__ = ['main']
