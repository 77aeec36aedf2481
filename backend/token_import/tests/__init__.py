"""
Test suite for the token import engine.

Test Categories:
- Registry tests: local destination and account registries
- Engine tests: origin lookup, validation, dedup registries, importer
- Batch tests: orchestration, isolation and size bounds
- Service tests: end-to-end scenarios and administration
"""
