"""Concrete adapters for the collaborator interfaces in ``docportal.interfaces``."""
