"""
Listing analysis.

Responsibilities:
- Snapshot models shared across the backend.
- Market statistics and amenity comparison over the competitor set.
- The end-to-end pipeline: fetch, recommend, aggregate, track, persist.
"""
