"""Generate the Python code which reads and writes values against the protocol."""
from typing import Optional, Tuple

from icontract import ensure

from idl_codegen import model
from idl_codegen.common import (
    Error,
    SchemaError,
    Stripped,
    assert_never,
    indent_but_first_line,
)
from idl_codegen.python import common as python_common
from idl_codegen.python.common import INDENT as I


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def generate_read(
    target: str, a_type: model.TypeUnion, context: python_common.ModuleContext
) -> Tuple[Optional[Stripped], Optional[Error]]:
    """
    Generate the statements deserializing a value of ``a_type`` into ``target``.

    The protocol is expected in the variable ``iprot``. The containers are read
    recursively with temporaries unique in the module of the ``context``.
    """
    resolved = model.resolve(a_type)

    if isinstance(resolved, model.PrimitiveType):
        suffix = python_common.PROTOCOL_SUFFIX_MAP.get(resolved.kind, None)
        if suffix is None:
            return None, SchemaError(
                None, f"A value of the type {resolved.kind.value} can not be read"
            )

        return Stripped(f"{target} = iprot.read{suffix}()"), None

    elif isinstance(resolved, model.EnumType):
        return Stripped(f"{target} = iprot.readI32()"), None

    elif isinstance(resolved, (model.StructType, model.ExceptionType)):
        return (
            Stripped(
                f"""\
{target} = {context.qualified(resolved.struct)}()
{target}.read(iprot)"""
            ),
            None,
        )

    elif isinstance(resolved, (model.ListType, model.SetType)):
        size = context.names.next("size")
        etype = context.names.next("etype")
        i = context.names.next("i")
        elem = context.names.next("elem")

        elem_read, error = generate_read(elem, resolved.items, context)
        if error is not None:
            return None, error

        assert elem_read is not None

        if isinstance(resolved, model.ListType):
            initialization = "[]"
            container = "List"
            insertion = f"{target}.append({elem})"
        else:
            initialization = "set()"
            container = "Set"
            insertion = f"{target}.add({elem})"

        return (
            Stripped(
                f"""\
{target} = {initialization}
({etype}, {size}) = iprot.read{container}Begin()
for {i} in range({size}):
{I}{indent_but_first_line(elem_read, I)}
{I}{insertion}
iprot.read{container}End()"""
            ),
            None,
        )

    elif isinstance(resolved, model.MapType):
        size = context.names.next("size")
        ktype = context.names.next("ktype")
        vtype = context.names.next("vtype")
        i = context.names.next("i")
        key = context.names.next("key")
        val = context.names.next("val")

        key_read, error = generate_read(key, resolved.keys, context)
        if error is not None:
            return None, error

        val_read, error = generate_read(val, resolved.values, context)
        if error is not None:
            return None, error

        assert key_read is not None
        assert val_read is not None

        return (
            Stripped(
                f"""\
{target} = {{}}
({ktype}, {vtype}, {size}) = iprot.readMapBegin()
for {i} in range({size}):
{I}{indent_but_first_line(key_read, I)}
{I}{indent_but_first_line(val_read, I)}
{I}{target}[{key}] = {val}
iprot.readMapEnd()"""
            ),
            None,
        )

    else:
        assert_never(resolved)

    raise AssertionError("Should not have gotten here")


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def generate_write(
    source: str, a_type: model.TypeUnion, context: python_common.ModuleContext
) -> Tuple[Optional[Stripped], Optional[Error]]:
    """
    Generate the statements serializing the value of ``a_type`` from ``source``.

    The protocol is expected in the variable ``oprot``.
    """
    resolved = model.resolve(a_type)

    if isinstance(resolved, model.PrimitiveType):
        suffix = python_common.PROTOCOL_SUFFIX_MAP.get(resolved.kind, None)
        if suffix is None:
            return None, SchemaError(
                None, f"A value of the type {resolved.kind.value} can not be written"
            )

        return Stripped(f"oprot.write{suffix}({source})"), None

    elif isinstance(resolved, model.EnumType):
        return Stripped(f"oprot.writeI32({source})"), None

    elif isinstance(resolved, (model.StructType, model.ExceptionType)):
        return Stripped(f"{source}.write(oprot)"), None

    elif isinstance(resolved, (model.ListType, model.SetType)):
        etype, error = python_common.wire_kind(resolved.items)
        if error is not None:
            return None, error

        it = context.names.next("iter")

        elem_write, error = generate_write(it, resolved.items, context)
        if error is not None:
            return None, error

        assert elem_write is not None

        container = "List" if isinstance(resolved, model.ListType) else "Set"

        return (
            Stripped(
                f"""\
oprot.write{container}Begin({etype}, len({source}))
for {it} in {source}:
{I}{indent_but_first_line(elem_write, I)}
oprot.write{container}End()"""
            ),
            None,
        )

    elif isinstance(resolved, model.MapType):
        ktype, error = python_common.wire_kind(resolved.keys)
        if error is not None:
            return None, error

        vtype, error = python_common.wire_kind(resolved.values)
        if error is not None:
            return None, error

        kiter = context.names.next("kiter")
        viter = context.names.next("viter")

        key_write, error = generate_write(kiter, resolved.keys, context)
        if error is not None:
            return None, error

        val_write, error = generate_write(viter, resolved.values, context)
        if error is not None:
            return None, error

        assert key_write is not None
        assert val_write is not None

        return (
            Stripped(
                f"""\
oprot.writeMapBegin({ktype}, {vtype}, len({source}))
for {kiter}, {viter} in {source}.items():
{I}{indent_but_first_line(key_write, I)}
{I}{indent_but_first_line(val_write, I)}
oprot.writeMapEnd()"""
            ),
            None,
        )

    else:
        assert_never(resolved)

    raise AssertionError("Should not have gotten here")
