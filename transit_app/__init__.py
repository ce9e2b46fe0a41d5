"""
Transit App - Transit and Ephemeris Timeline Pipeline

Turns a (subject, date range) pair into a day-by-day series of astrological
positions and aspects. Minimizes calls to the external calculation service
through a month cache, tolerates per-day failures, and ranks aspects by
astrological significance.
"""

__version__ = "0.1.0"
__author__ = "Transit App Team"
