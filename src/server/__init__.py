"""HTTP API for sheet2tree."""
