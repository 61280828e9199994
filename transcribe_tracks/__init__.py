"""Merge per-speaker meeting tracks from an S3 bucket into one transcript."""

__version__ = "0.1.0"
