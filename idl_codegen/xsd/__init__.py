"""Generate the XML Schema Definition (XSD) based on the schema."""
