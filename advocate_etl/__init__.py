"""Advocate ETL: repair, validate and project per-advocate JSON documents."""

__version__ = "0.1.0"
