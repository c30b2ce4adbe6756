"""Work-assignment authorization, workflow and audit core."""

__version__ = "0.1.0"
