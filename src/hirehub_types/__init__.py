"""HireHub Types - Pydantic DTOs for the HireHub interview platform."""

__version__ = "0.1.0"
