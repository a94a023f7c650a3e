"""HTTP API for the Commonplace engine."""
