"""Configuration loading and the Book data model."""
