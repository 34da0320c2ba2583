"""Render the literal values of the schema as Python expressions."""
from idl_codegen.python.constants import _generate

render = _generate.render
generate_constant = _generate.generate_constant
generate = _generate.generate
