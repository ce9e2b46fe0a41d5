"""Structural validation of assembled ephemeris data."""
