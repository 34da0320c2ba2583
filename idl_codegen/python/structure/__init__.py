"""Generate the Python data structures from the schema."""
from idl_codegen.python.structure import _generate

VerifiedSchema = _generate.VerifiedSchema
verify = _generate.verify
generate_enum = _generate.generate_enum
generate_typedef = _generate.generate_typedef
generate_struct = _generate.generate_struct
generate = _generate.generate
