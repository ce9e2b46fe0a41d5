"""
Request lifecycle management for timeline fetching.

Tracks generations, cancels superseded requests and publishes snapshots
through IDLE → FETCHING → SETTLED / SUPERSEDED / FAILED.
"""
