"""Automatic build plate arrangement for 3D printing."""

__version__ = "0.1.0"
