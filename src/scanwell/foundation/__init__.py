"""Foundation layer: errors, logging, configuration, security helpers and types."""
