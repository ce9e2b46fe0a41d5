"""
Utility functions module.

Calendar helpers shared by the fetchers, caches and orchestrators.

Date Semantics:
- Every range is a closed interval of UTC calendar days
- Months are keyed as ``yyyy-mm``
- Records carry their day as an ISO-8601 UTC instant
"""
