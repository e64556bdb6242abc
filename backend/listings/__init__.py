"""
Listing-data provider integration.

Responsibilities:
- Talk to the external provider (search + detail lookups).
- Normalize heterogeneous payloads into flat listing and competitor records.
- Collect nearby competitors with retries and request pacing.
"""
