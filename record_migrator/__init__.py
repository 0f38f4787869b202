"""
Record Migrator

A migration engine for copying records of one entity type between two
environments of the same OData-based data platform.

Supports:
- Field-by-field mapping with per-field enable flags
- Lookup (reference) resolution across environments
- Automatic identity mapping for users, teams and business units
- Create, update and delete operations, with create+update acting as upsert
- Batched execution with per-record failure isolation and progress snapshots
"""

__version__ = "0.1.0"
