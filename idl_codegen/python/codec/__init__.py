"""Generate the Python code which reads and writes values against the protocol."""
from idl_codegen.python.codec import _generate

generate_read = _generate.generate_read
generate_write = _generate.generate_write
