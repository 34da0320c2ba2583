"""Generate the interface, the client and the processor of a service."""
import io
import textwrap
from typing import Optional, List, Tuple, Sequence

from icontract import ensure

from idl_codegen import model
from idl_codegen.common import (
    Error,
    Identifier,
    Stripped,
    indent_but_first_line,
)
from idl_codegen.python import (
    common as python_common,
    naming as python_naming,
    structure as python_structure,
)
from idl_codegen.python.common import (
    INDENT as I,
    INDENT2 as II,
    INDENT3 as III,
)

_TYPES_MODULE = Identifier("ttypes")


# region Helper structs


def args_struct(function: model.Function) -> model.Struct:
    """
    Create the helper struct which carries the arguments of the ``function``.

    The fields are numbered by their position, starting at 1.
    """
    return model.Struct(
        name=python_naming.args_struct_name(function.name),
        fields=[
            model.Field(
                name=argument.name,
                field_id=i + 1,
                a_type=argument.a_type,
                default=argument.default,
            )
            for i, argument in enumerate(function.arguments)
        ],
    )


def result_struct(function: model.Function) -> model.Struct:
    """
    Create the helper struct which carries the outcome of the ``function``.

    The returned value goes to the field ``success`` with the ID 0, unless
    the function returns ``void``. The declared exceptions follow numbered by
    their position, starting at 1.
    """
    fields = []  # type: List[model.Field]
    if not model.is_void(function.returns):
        fields.append(
            model.Field(
                name=Identifier("success"), field_id=0, a_type=function.returns
            )
        )

    for i, exception in enumerate(function.exceptions):
        fields.append(
            model.Field(name=exception.name, field_id=i + 1, a_type=exception.a_type)
        )

    return model.Struct(
        name=python_naming.result_struct_name(function.name), fields=fields
    )


# endregion

# region Generation


def _generate_def(
    name: Identifier, parameters: Sequence[str], returns: str
) -> Stripped:
    """Generate the signature of a method; the body is to be appended."""
    one_line = f"def {name}({', '.join(parameters)}) -> {returns}:"
    if len(one_line) <= 80:
        return Stripped(one_line)

    parameter_block = textwrap.indent(",\n".join(parameters), II)
    return Stripped(f"def {name}(\n{parameter_block}\n) -> {returns}:")


def _parameters(function: model.Function) -> List[str]:
    return ["self"] + [
        f"{argument.name}: {python_common.generate_type(argument.a_type, _TYPES_MODULE)}"
        for argument in function.arguments
    ]


def _returns(function: model.Function) -> str:
    return python_common.generate_type(function.returns, _TYPES_MODULE)


def _generate_iface(
    service: model.Service, parent_module: Optional[Identifier]
) -> Stripped:
    writer = io.StringIO()

    base = "abc.ABC" if parent_module is None else f"{parent_module}.Iface"
    writer.write(
        f"""\
class Iface({base}):
{I}\"\"\"Define the functions of the service {service.name}.\"\"\""""
    )

    for function in service.functions:
        signature = _generate_def(
            function.name, _parameters(function), _returns(function)
        )
        writer.write(
            f"""

{I}@abc.abstractmethod
{I}{indent_but_first_line(signature, I)}
{II}raise NotImplementedError()"""
        )

    return Stripped(writer.getvalue())


def _generate_client_methods(function: model.Function) -> Stripped:
    """Generate the call, the sending and, for two-way functions, the receiving."""
    blocks = []  # type: List[Stripped]

    name = function.name
    send_name = python_naming.send_method_name(name)
    recv_name = python_naming.recv_method_name(name)
    argument_names = ", ".join(argument.name for argument in function.arguments)
    name_literal = python_common.string_literal(name)

    # region Call

    signature = _generate_def(name, _parameters(function), _returns(function))
    if function.oneway:
        blocks.append(
            Stripped(
                f"""\
{signature}
{I}self.{send_name}({argument_names})"""
            )
        )
    else:
        return_prefix = "" if model.is_void(function.returns) else "return "
        blocks.append(
            Stripped(
                f"""\
{signature}
{I}self.{send_name}({argument_names})
{I}{return_prefix}self.{recv_name}()"""
            )
        )

    # endregion

    # region Send

    writer = io.StringIO()
    writer.write(_generate_def(send_name, _parameters(function), "None"))
    writer.write(
        f"""
{I}self._seqid += 1
{I}self._oprot.writeMessageBegin({name_literal}, TMessageType.CALL, self._seqid)
{I}args = {python_naming.args_struct_name(name)}()"""
    )
    for argument in function.arguments:
        writer.write(f"\n{I}args.{argument.name} = {argument.name}")

    writer.write(
        f"""
{I}args.write(self._oprot)
{I}self._oprot.writeMessageEnd()
{I}self._oprot.trans.flush()"""
    )
    blocks.append(Stripped(writer.getvalue()))

    # endregion

    if function.oneway:
        return Stripped("\n\n".join(blocks))

    # region Receive

    writer = io.StringIO()
    writer.write(
        f"""\
def {recv_name}(self) -> {_returns(function)}:
{I}iprot = self._iprot
{I}(fname, mtype, rseqid) = iprot.readMessageBegin()
{I}if mtype == TMessageType.EXCEPTION:
{II}x = TApplicationException()
{II}x.read(iprot)
{II}iprot.readMessageEnd()
{II}raise x
{I}result = {python_naming.result_struct_name(name)}()
{I}result.read(iprot)
{I}iprot.readMessageEnd()
{I}if rseqid != self._seqid:
{II}raise TApplicationException(
{III}TApplicationException.BAD_SEQUENCE_ID,
{III}{python_common.string_literal(f"{name} failed: out of sequence response")},
{II})"""
    )

    if not model.is_void(function.returns):
        writer.write(
            f"""
{I}if result.success is not None:
{II}return result.success"""
        )

    for exception in function.exceptions:
        writer.write(
            f"""
{I}if result.{exception.name} is not None:
{II}raise result.{exception.name}"""
        )

    if not model.is_void(function.returns):
        writer.write(
            f"""
{I}raise TApplicationException(
{II}TApplicationException.MISSING_RESULT,
{II}{python_common.string_literal(f"{name} failed: unknown result")},
{I})"""
        )

    blocks.append(Stripped(writer.getvalue()))

    # endregion

    return Stripped("\n\n".join(blocks))


def _generate_client(
    service: model.Service, parent_module: Optional[Identifier]
) -> Stripped:
    blocks = []  # type: List[Stripped]

    if parent_module is None:
        blocks.append(
            Stripped(
                f"""\
def __init__(self, iprot, oprot=None) -> None:
{I}\"\"\"Initialize with the input and, optionally, a separate output protocol.\"\"\"
{I}self._iprot = iprot
{I}self._oprot = iprot if oprot is None else oprot
{I}self._seqid = 0"""
            )
        )

    for function in service.functions:
        blocks.append(_generate_client_methods(function))

    bases = "Iface" if parent_module is None else f"{parent_module}.Client, Iface"

    writer = io.StringIO()
    writer.write(
        f"""\
class Client({bases}):
{I}\"\"\"Call the functions of the service {service.name} over the protocol.\"\"\""""
    )
    for block in blocks:
        writer.write("\n\n")
        writer.write(textwrap.indent(block, I))

    return Stripped(writer.getvalue())


def _generate_process_method(function: model.Function) -> Stripped:
    """Generate the method which reads the arguments, calls the handler and replies."""
    name = function.name
    call = (
        f"self._handler.{name}("
        f"{', '.join(f'args.{argument.name}' for argument in function.arguments)})"
    )

    writer = io.StringIO()
    writer.write(
        f"""\
def {python_naming.process_method_name(name)}(self, seqid, iprot, oprot) -> None:
{I}args = {python_naming.args_struct_name(name)}()
{I}args.read(iprot)
{I}iprot.readMessageEnd()"""
    )

    if function.oneway:
        writer.write(f"\n{I}{call}")
        return Stripped(writer.getvalue())

    writer.write(f"\n{I}result = {python_naming.result_struct_name(name)}()")

    invocation = call if model.is_void(function.returns) else f"result.success = {call}"

    if len(function.exceptions) == 0:
        writer.write(f"\n{I}{invocation}")
    else:
        writer.write(
            f"""
{I}try:
{II}{invocation}"""
        )
        for exception in function.exceptions:
            resolved = model.resolve(exception.a_type)
            assert isinstance(resolved, model.ExceptionType)

            writer.write(
                f"""
{I}except {_TYPES_MODULE}.{resolved.struct.name} as exception:
{II}result.{exception.name} = exception"""
            )

    writer.write(
        f"""
{I}oprot.writeMessageBegin({python_common.string_literal(name)}, TMessageType.REPLY, seqid)
{I}result.write(oprot)
{I}oprot.writeMessageEnd()
{I}oprot.trans.flush()"""
    )

    return Stripped(writer.getvalue())


def _generate_processor(
    service: model.Service,
    ontology: model.ServiceOntology,
    parent_module: Optional[Identifier],
) -> Stripped:
    blocks = []  # type: List[Stripped]

    if parent_module is None:
        blocks.append(
            Stripped(
                f"""\
def __init__(self, handler: Iface) -> None:
{I}\"\"\"Initialize with the given handler.\"\"\"
{I}self._handler = handler"""
            )
        )

        blocks.append(
            Stripped(
                f"""\
def process(self, iprot, oprot) -> bool:
{I}\"\"\"
{I}Read a call from ``iprot``, serve it and write the reply to ``oprot``.

{I}:return: False if the function is unknown
{I}\"\"\"
{I}(name, mtype, seqid) = iprot.readMessageBegin()
{I}process_function = self._PROCESS_MAP.get(name, None)
{I}if process_function is None:
{II}iprot.skip(TType.STRUCT)
{II}iprot.readMessageEnd()
{II}x = TApplicationException(
{III}TApplicationException.UNKNOWN_METHOD, f"Unknown function {{name}}"
{II})
{II}oprot.writeMessageBegin(name, TMessageType.EXCEPTION, seqid)
{II}x.write(oprot)
{II}oprot.writeMessageEnd()
{II}oprot.trans.flush()
{II}return False

{I}process_function(self, seqid, iprot, oprot)
{I}return True"""
            )
        )

    for function in service.functions:
        blocks.append(_generate_process_method(function))

    # region Dispatch table

    entries = []  # type: List[str]
    for declaring, function in ontology.list_functions(service):
        process_name = python_naming.process_method_name(function.name)
        name_literal = python_common.string_literal(function.name)

        if declaring is service:
            entries.append(f"{name_literal}: {process_name}")
        else:
            assert parent_module is not None
            entries.append(f"{name_literal}: {parent_module}.Processor.{process_name}")

    if len(entries) == 0:
        blocks.append(Stripped("_PROCESS_MAP = {}  # type: Dict[str, Callable]"))
    else:
        entries_block = textwrap.indent(",\n".join(entries), I)
        blocks.append(
            Stripped(
                f"""\
_PROCESS_MAP = {{
{entries_block},
}}  # type: Dict[str, Callable]"""
            )
        )

    # endregion

    base = "" if parent_module is None else f"({parent_module}.Processor)"

    writer = io.StringIO()
    writer.write(
        f"""\
class Processor{base}:
{I}\"\"\"Dispatch the calls of the service {service.name} to the handler.\"\"\""""
    )
    for block in blocks:
        writer.write("\n\n")
        writer.write(textwrap.indent(block, I))

    return Stripped(writer.getvalue())


# fmt: off
@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
@ensure(
    lambda result:
    not (result[0] is not None) or result[0].endswith('\n'),
    "Trailing newline mandatory for valid end-of-files"
)
# fmt: on
def generate(
    service: model.Service,
    ontology: model.ServiceOntology,
    runtime_module: python_common.QualifiedModuleName,
) -> Tuple[Optional[str], Optional[Error]]:
    """
    Generate the module with the stubs of the ``service``.

    The stubs of the parent service are imported from its own module.
    """
    parent_module = None  # type: Optional[Identifier]
    if service.parent is not None:
        parent_module = python_naming.service_module_name(service.parent.name)

    imports = io.StringIO()
    imports.write(
        f"""\
import abc
from typing import Any, Callable, Dict, List, Optional, Set

from {runtime_module} import TApplicationException, TMessageType, TType

from . import {_TYPES_MODULE}"""
    )
    if parent_module is not None:
        imports.write(f"\nfrom . import {parent_module}")

    blocks = [
        Stripped(f'"""Provide the stubs of the service {service.name}."""'),
        python_common.WARNING,
        Stripped(imports.getvalue()),
        python_common.UNSET_DEFINITION,
    ]  # type: List[Stripped]

    context = python_common.ModuleContext(types_module=_TYPES_MODULE)

    errors = []  # type: List[Error]
    for function in service.functions:
        helpers = [args_struct(function)]
        if not function.oneway:
            helpers.append(result_struct(function))

        for helper in helpers:
            block, error = python_structure.generate_struct(helper, context)
            if error is not None:
                errors.append(error)
                continue

            assert block is not None
            blocks.append(block)

    if len(errors) > 0:
        return None, Error(
            f"service {service.name!r}",
            "Failed to generate the helper structs of the functions",
            errors,
        )

    blocks.append(_generate_iface(service, parent_module))
    blocks.append(_generate_client(service, parent_module))
    blocks.append(_generate_processor(service, ontology, parent_module))

    blocks.append(python_common.WARNING)

    writer = io.StringIO()
    for i, block in enumerate(blocks):
        if i > 0:
            writer.write("\n\n\n")

        writer.write(block)

    writer.write("\n")

    return writer.getvalue(), None


# endregion
