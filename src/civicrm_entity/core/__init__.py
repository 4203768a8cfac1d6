"""Cross-cutting infrastructure: structured logging setup."""
