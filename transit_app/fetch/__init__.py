"""
Fetchers that turn date ranges into day-by-day time series.

RangeFetcher builds transit timelines for a natal subject; EphemerisFetcher
builds the sky ephemeris at a fixed observer.
"""

from .ephemeris_fetcher import EphemerisFetcher
from .range_fetcher import RangeFetcher

__all__ = ["RangeFetcher", "EphemerisFetcher"]
