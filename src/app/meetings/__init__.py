"""Meeting records -- schemas, persistence, full-text search and ingestion.

Provides the MeetingRecord contract, the PostgreSQL-backed MeetingRepository,
and the search and audio ingestion services built on top of it.
"""
