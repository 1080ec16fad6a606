"""Publish selected vault files to a GitHub repository branch."""

__version__ = "0.1.0"
