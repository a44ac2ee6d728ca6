"""Stored baselines: schema, repository, writer and selection."""
