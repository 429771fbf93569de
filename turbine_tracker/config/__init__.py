"""Configuration package: settings, constants, database and logging."""
