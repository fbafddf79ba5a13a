"""archrules - architecture conformance rules over frozen type metadata."""

__version__ = "0.4.0"
