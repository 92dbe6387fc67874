"""Service layer for the advocate ETL pipeline."""
