"""Human-readable warnings and summaries."""
