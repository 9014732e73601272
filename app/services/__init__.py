"""Service layer: association reconciliation, bulk import, and collaborators."""
