"""
bookstore

Query runner for the bookstore inventory stored in MongoDB.
"""

__version__ = "0.1.0"
