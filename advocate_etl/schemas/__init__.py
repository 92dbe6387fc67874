"""Pydantic schemas for canonical documents, quarantine items and worker jobs."""
