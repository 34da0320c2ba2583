"""Generate the interface, the client and the processor of a service."""
from idl_codegen.python.service import _generate

args_struct = _generate.args_struct
result_struct = _generate.result_struct
generate = _generate.generate
