"""Shared infrastructure: records, collaborator protocols, logging."""
