"""Generate Python serialization code and service stubs based on the schema."""
