"""
Shared TubeHeads backend library code.

This package holds the service core reused across:
- the FastAPI app in `api/`
- maintenance scripts in `scripts/`

App entrypoints (FastAPI routers, CLI scripts) should live outside this package and
import from `tubeheads_backend` rather than the other way around.
"""
