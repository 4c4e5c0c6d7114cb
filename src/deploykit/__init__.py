"""deploykit: provision, deploy and validate a containerized app on one host."""

__version__ = "0.1.0"
