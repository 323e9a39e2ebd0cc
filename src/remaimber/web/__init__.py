"""HTTP API for remaimber."""
