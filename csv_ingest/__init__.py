# ==============================================
# CSV Ingest
# ==============================================
#
# Package Structure:
#
# csv_ingest/
# ├── normalization/     # Header cleaning + column type inference
# ├── analysis/          # Specialized-vs-generic classifier, field mapper
# ├── storage/           # Upload record store (MySQL / in-memory)
# ├── persistence/       # Temporary on-disk copies of uploads
# ├── csv_reader.py      # CSV bytes → headers + rows
# ├── ingest_pipeline.py # Final orchestrator class
# ├── statistics.py      # Aggregate counters over uploads
# ├── api.py             # FastAPI routes
# ├── config.py          # Configuration management
# └── cli.py             # Command line entry point
#
# ==============================================

__version__ = "0.1.0"
