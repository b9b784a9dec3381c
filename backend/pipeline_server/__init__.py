"""Pipeline board server: stage registry, transitions and the HTTP API."""
