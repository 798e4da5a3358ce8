"""HTTP API for memorai."""
