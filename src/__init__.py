"""Flow Rules Service."""
