"""Cross-cutting service primitives: base class, errors, validation, ports."""
