"""Production workflow engine for a motorcycle paint shop."""
