"""HTTP surface: search blueprint, token check, request validation."""
