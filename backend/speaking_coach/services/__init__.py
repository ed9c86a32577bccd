"""Analysis services: external clients, prompt registry, store and pipeline."""
