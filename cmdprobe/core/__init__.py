"""Cross-cutting infrastructure: logging, exceptions, configuration and rule predicates."""
