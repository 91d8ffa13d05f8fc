"""Core value types: results, failure payloads and run summaries."""
