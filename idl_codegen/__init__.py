"""Generate serialization code, service stubs and schemas based on an IDL schema."""

__version__ = "0.1.0"
__author__ = "The idl-codegen developers"
__license__ = "License :: OSI Approved :: MIT License"
__status__ = "Alpha"
