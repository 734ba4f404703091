"""
Forensic Ingest

Imports a directory of forensic evidence (e.g. a mounted disk image) into a
wide-column row-store. Small files are stored inline next to their metadata,
large files are copied to a blob-store and referenced by path.

Usage:
    forensic-ingest import /mnt/evidence -c CASE-2024-17 -f "Laptop image"
    forensic-ingest show
"""

__version__ = "0.1.0"
__author__ = "Forensic Ingest"
