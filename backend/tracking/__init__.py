"""
Change tracking between consecutive snapshots of a listing's market.
"""
