"""
Ingest and query-time call sites, configuration and error taxonomy.
"""
