"""
Scripts Package.

Operational scripts for the trend ingestion pipeline.

Scripts:
- bootstrap_db: Database initialization
- run_ingestion: Run the ingestion pipeline (once or as a daemon)
"""
