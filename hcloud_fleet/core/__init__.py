"""Configuration, exceptions and logging setup."""
