"""Generate Python identifiers based on the identifiers from the schema."""
from idl_codegen import naming
from idl_codegen.common import Identifier


def service_module_name(identifier: Identifier) -> Identifier:
    """
    Generate the name of the module which holds the stubs of a service.

    >>> service_module_name(Identifier("Calculator"))
    'calculator'

    >>> service_module_name(Identifier("SharedService"))
    'shared_service'
    """
    return naming.lower_snake_case(identifier)


def args_struct_name(identifier: Identifier) -> Identifier:
    """
    Generate the name of the helper struct carrying the arguments of a function.

    >>> args_struct_name(Identifier("add"))
    'add_args'
    """
    return Identifier(f"{identifier}_args")


def result_struct_name(identifier: Identifier) -> Identifier:
    """
    Generate the name of the helper struct carrying the outcome of a function.

    >>> result_struct_name(Identifier("add"))
    'add_result'
    """
    return Identifier(f"{identifier}_result")


def send_method_name(identifier: Identifier) -> Identifier:
    """
    Generate the name of the client method which sends the call.

    >>> send_method_name(Identifier("add"))
    'send_add'
    """
    return Identifier(f"send_{identifier}")


def recv_method_name(identifier: Identifier) -> Identifier:
    """
    Generate the name of the client method which receives the reply.

    >>> recv_method_name(Identifier("add"))
    'recv_add'
    """
    return Identifier(f"recv_{identifier}")


def process_method_name(identifier: Identifier) -> Identifier:
    """
    Generate the name of the processor method which serves a function.

    >>> process_method_name(Identifier("add"))
    'process_add'
    """
    return Identifier(f"process_{identifier}")
