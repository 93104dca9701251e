"""BLAST job tracker package.

The package is structured around one lifecycle (waiting -> ready / failed / no_match):
- `models.py` defines the job record and the decoded remote status.
- `remote/` contains the client for the remote search service.
- `store.py` persists jobs; `sync.py` is the only code that advances them.
- `search.py` and `status.py` are read-only views over the store.
"""
