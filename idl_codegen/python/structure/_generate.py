"""Generate the Python data structures from the schema."""
import io
import keyword
import textwrap
from typing import (
    Optional,
    List,
    Tuple,
    cast,
    Sequence,
    MutableMapping,
)

from icontract import ensure

from idl_codegen import model
from idl_codegen.common import (
    Error,
    SchemaError,
    Identifier,
    assert_never,
    Stripped,
    indent_but_first_line,
)
from idl_codegen.python import (
    common as python_common,
    codec as python_codec,
    constants as python_constants,
    naming as python_naming,
)
from idl_codegen.python.common import (
    INDENT as I,
    INDENT2 as II,
    INDENT3 as III,
    UNSET,
)

# region Checks

#: Names defined by the generated ``ttypes`` module besides the declarations
_RESERVED_MODULE_NAMES = frozenset(
    [
        "enum",
        "Any",
        "Dict",
        "List",
        "Optional",
        "Set",
        "TType",
        "TException",
        python_common.UNSET,
    ]
)

#: Names which the fields can not take due to the generated methods
_RESERVED_FIELD_NAMES = frozenset(["self", "read", "write"])

#: Names which the fields of exceptions can not take as they shadow the attributes
#: of ``BaseException``
_RESERVED_EXCEPTION_FIELD_NAMES = frozenset(
    [
        "args",
        "with_traceback",
        "add_note",
        "__traceback__",
        "__cause__",
        "__context__",
        "__suppress_context__",
        "__notes__",
    ]
)

#: Names of the generated modules besides the service modules
_RESERVED_PACKAGE_MODULE_NAMES = frozenset(["ttypes", "constants"])


def _verify_identifier(identifier: Identifier, where: str) -> Optional[Error]:
    if keyword.iskeyword(identifier):
        return Error(
            where, f"The identifier is a keyword in Python: {identifier!r}"
        )

    return None


def _verify_hashable(
    a_type: model.TypeUnion, where: str, errors: List[Error]
) -> None:
    """Check recursively that set elements and map keys are hashable in Python."""
    resolved = model.resolve(a_type)

    if isinstance(resolved, model.SetType):
        items = model.resolve(resolved.items)
        if not isinstance(items, (model.PrimitiveType, model.EnumType)):
            errors.append(
                Error(
                    where,
                    f"The elements of a set must be hashable in Python, "
                    f"but got: {resolved.items}",
                )
            )

        _verify_hashable(resolved.items, where, errors)

    elif isinstance(resolved, model.MapType):
        keys = model.resolve(resolved.keys)
        if not isinstance(keys, (model.PrimitiveType, model.EnumType)):
            errors.append(
                Error(
                    where,
                    f"The keys of a map must be hashable in Python, "
                    f"but got: {resolved.keys}",
                )
            )

        _verify_hashable(resolved.keys, where, errors)
        _verify_hashable(resolved.values, where, errors)

    elif isinstance(resolved, model.ListType):
        _verify_hashable(resolved.items, where, errors)

    elif isinstance(
        resolved,
        (
            model.PrimitiveType,
            model.EnumType,
            model.StructType,
            model.ExceptionType,
        ),
    ):
        pass

    else:
        assert_never(resolved)


def _verify_fields(
    fields: Sequence[model.Field], where: str, errors: List[Error]
) -> None:
    for field in fields:
        field_where = f"field {field.name!r} of {where}"

        error = _verify_identifier(field.name, field_where)
        if error is not None:
            errors.append(error)

        _verify_hashable(field.a_type, field_where, errors)


def _verify_structs(schema: model.Schema) -> List[Error]:
    errors = []  # type: List[Error]

    for struct in schema.structs:
        where = f"{'exception' if struct.is_exception else 'struct'} {struct.name!r}"

        _verify_fields(struct.fields, where, errors)

        for field in struct.fields:
            if field.name in _RESERVED_FIELD_NAMES:
                errors.append(
                    Error(
                        where,
                        f"The field name {field.name!r} collides "
                        f"with the generated code",
                    )
                )

            if struct.is_exception and field.name in _RESERVED_EXCEPTION_FIELD_NAMES:
                errors.append(
                    Error(
                        where,
                        f"The field name {field.name!r} shadows an attribute "
                        f"of the Python exceptions",
                    )
                )

    return errors


def _verify_services(schema: model.Schema) -> List[Error]:
    errors = []  # type: List[Error]

    observed_modules = dict()  # type: MutableMapping[Identifier, model.Service]

    for service in schema.services:
        where = f"service {service.name!r}"

        module_name = python_naming.service_module_name(service.name)
        if module_name in _RESERVED_PACKAGE_MODULE_NAMES:
            errors.append(
                Error(
                    where,
                    f"The module name of the service {module_name!r} "
                    f"collides with a generated module",
                )
            )

        another = observed_modules.get(module_name, None)
        if another is not None:
            errors.append(
                Error(
                    where,
                    f"The module name of the service {module_name!r} collides "
                    f"with the module of the service {another.name!r}",
                )
            )
        else:
            observed_modules[module_name] = service

        for function in service.functions:
            function_where = f"function {function.name!r} of {where}"

            error = _verify_identifier(function.name, function_where)
            if error is not None:
                errors.append(error)

            _verify_fields(function.arguments, function_where, errors)
            _verify_fields(function.exceptions, function_where, errors)

            for argument in function.arguments:
                if argument.name in ("self", "args"):
                    errors.append(
                        Error(
                            function_where,
                            f"The argument name {argument.name!r} collides "
                            f"with the generated code",
                        )
                    )

            for exception in function.exceptions:
                if exception.name == "success":
                    errors.append(
                        Error(
                            function_where,
                            "The exception name 'success' is reserved "
                            "for the result of the function",
                        )
                    )

            _verify_hashable(function.returns, function_where, errors)

    return errors


class VerifiedSchema(model.Schema):
    """Represent a verified schema which can be used for code generation."""

    # noinspection PyInitNewSignature
    def __new__(cls, schema: model.Schema) -> "VerifiedSchema":
        raise AssertionError("Only for type annotation")


@ensure(lambda result: (result[0] is None) ^ (result[1] is None))
def verify(
    schema: model.Schema,
) -> Tuple[Optional[VerifiedSchema], Optional[List[Error]]]:
    """Verify that Python code can be generated from the ``schema``."""
    errors = []  # type: List[Error]

    for declaration in schema.declarations:
        where = f"{type(declaration).__name__.lower()} {declaration.name!r}"
        error = _verify_identifier(declaration.name, where)
        if error is not None:
            errors.append(error)

        if declaration.name in _RESERVED_MODULE_NAMES:
            errors.append(
                Error(
                    where,
                    f"The name {declaration.name!r} collides with a name "
                    f"imported or defined in the generated code",
                )
            )

    for enumeration in schema.enumerations:
        for literal in enumeration.literals:
            error = _verify_identifier(
                literal.name, f"enumeration {enumeration.name!r}"
            )
            if error is not None:
                errors.append(error)

    for typedef in schema.typedefs:
        _verify_hashable(typedef.a_type, f"typedef {typedef.name!r}", errors)

    for constant in schema.constants:
        _verify_hashable(constant.a_type, f"constant {constant.name!r}", errors)

    errors.extend(_verify_structs(schema))
    errors.extend(_verify_services(schema))

    if len(errors) > 0:
        return None, errors

    return cast(VerifiedSchema, schema), None


# endregion

# region Generation


def generate_enum(enumeration: model.Enumeration) -> Stripped:
    """Generate the Python code for the ``enumeration``."""
    writer = io.StringIO()

    writer.write(f"class {enumeration.name}(enum.IntEnum):\n")
    writer.write(f'{I}"""Enumerate the literals of {enumeration.name}."""')

    values = model.resolve_enumeration_values(enumeration)
    for literal, value in zip(enumeration.literals, values):
        writer.write(f"\n{I}{literal.name} = {value}")

    return Stripped(writer.getvalue())


def generate_typedef(typedef: model.Typedef) -> Stripped:
    """Generate the type alias for the ``typedef``."""
    resolved = model.resolve(typedef.a_type)

    if isinstance(resolved, (model.StructType, model.ExceptionType)):
        aliased = Stripped(resolved.struct.name)

    elif isinstance(resolved, model.EnumType):
        aliased = Stripped(resolved.enumeration.name)

    else:
        aliased = python_common.generate_type(typedef.a_type)

    return Stripped(f"{typedef.name} = {aliased}")


def _is_immutable(a_type: model.TypeUnion) -> bool:
    """Check that the values of ``a_type`` can be shared as default arguments."""
    return isinstance(model.resolve(a_type), (model.PrimitiveType, model.EnumType))


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def _generate_constructor(
    struct: model.Struct, context: python_common.ModuleContext
) -> Tuple[Optional[Stripped], Optional[Error]]:
    """
    Generate the constructor for the ``struct``.

    The defaults of immutable types are given in the signature. The defaults of
    structs and containers are constructed in the body, after all the fields
    have been assigned, for the arguments left at the unset marker so that an
    explicit ``None`` keeps the field absent.
    """
    arg_codes = []  # type: List[str]
    body = []  # type: List[Stripped]
    constructed_defaults = []  # type: List[Stripped]

    for field in struct.fields:
        field_type = python_common.generate_type(field.a_type, context.types_module)

        rendered = None  # type: Optional[Stripped]
        if field.default is not None:
            rendered, error = python_constants.render(
                field.a_type, field.default, context.types_module
            )
            if error is not None:
                return None, Error(
                    f"struct {struct.name!r}",
                    f"Failed to render the default value of the field {field.name!r}",
                    [error],
                )

            assert rendered is not None

        if rendered is None:
            arg_codes.append(f"{field.name}: Optional[{field_type}] = None")
        elif _is_immutable(field.a_type):
            arg_codes.append(f"{field.name}: Optional[{field_type}] = {rendered}")
        else:
            arg_codes.append(f"{field.name}: Optional[{field_type}] = {UNSET}")

        body.append(Stripped(f"self.{field.name} = {field.name}"))

        if rendered is not None and not _is_immutable(field.a_type):
            constructed_defaults.append(
                Stripped(
                    f"""\
if self.{field.name} is {UNSET}:
{I}self.{field.name} = {indent_but_first_line(rendered, I)}"""
                )
            )

    writer = io.StringIO()

    if len(arg_codes) == 0:
        writer.write("def __init__(self) -> None:\n")
    else:
        arg_block = ",\n".join(["self"] + arg_codes)
        arg_block_indented = textwrap.indent(arg_block, II)
        writer.write(f"def __init__(\n{arg_block_indented}\n) -> None:\n")

    writer.write(f'{I}"""Initialize with the given values."""')

    for stmt in body + constructed_defaults:
        writer.write(f"\n{I}{indent_but_first_line(stmt, I)}")

    return Stripped(writer.getvalue()), None


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def _generate_read(
    struct: model.Struct, context: python_common.ModuleContext
) -> Tuple[Optional[Stripped], Optional[Error]]:
    """Generate the method deserializing the ``struct`` field by field."""
    cases = []  # type: List[Stripped]

    for field in struct.fields:
        expected_kind, error = python_common.wire_kind(field.a_type)
        if error is not None:
            return None, error

        field_read, error = python_codec.generate_read(
            f"self.{field.name}", field.a_type, context
        )
        if error is not None:
            return None, error

        assert expected_kind is not None
        assert field_read is not None

        cases.append(
            Stripped(
                f"""\
if fid == {field.field_id}:
{I}if ftype == {expected_kind}:
{II}{indent_but_first_line(field_read, II)}
{I}else:
{II}iprot.skip(ftype)"""
            )
        )

    if len(cases) == 0:
        dispatch = Stripped("iprot.skip(ftype)")
    else:
        writer = io.StringIO()
        for i, case in enumerate(cases):
            if i > 0:
                writer.write("\nel")
            writer.write(case)

        writer.write(
            f"""
else:
{I}iprot.skip(ftype)"""
        )
        dispatch = Stripped(writer.getvalue())

    return (
        Stripped(
            f"""\
def read(self, iprot) -> None:
{I}\"\"\"Read the fields from ``iprot`` skipping the unknown ones.\"\"\"
{I}iprot.readStructBegin()
{I}while True:
{II}(fname, ftype, fid) = iprot.readFieldBegin()
{II}if ftype == TType.STOP:
{III}break
{II}{indent_but_first_line(dispatch, II)}
{II}iprot.readFieldEnd()
{I}iprot.readStructEnd()"""
        ),
        None,
    )


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def _generate_write(
    struct: model.Struct, context: python_common.ModuleContext
) -> Tuple[Optional[Stripped], Optional[Error]]:
    """Generate the method serializing the present fields of the ``struct``."""
    writer = io.StringIO()
    writer.write(
        f"""\
def write(self, oprot) -> None:
{I}\"\"\"Write the fields which are set to ``oprot``.\"\"\"
{I}oprot.writeStructBegin({python_common.string_literal(struct.name)})"""
    )

    for field in struct.fields:
        kind, error = python_common.wire_kind(field.a_type)
        if error is not None:
            return None, error

        field_write, error = python_codec.generate_write(
            f"self.{field.name}", field.a_type, context
        )
        if error is not None:
            return None, error

        assert kind is not None
        assert field_write is not None

        name_literal = python_common.string_literal(field.name)
        writer.write(
            f"""
{I}if self.{field.name} is not None:
{II}oprot.writeFieldBegin({name_literal}, {kind}, {field.field_id})
{II}{indent_but_first_line(field_write, II)}
{II}oprot.writeFieldEnd()"""
        )

    writer.write(
        f"""
{I}oprot.writeFieldStop()
{I}oprot.writeStructEnd()"""
    )

    return Stripped(writer.getvalue()), None


_EQ_AND_REPR = Stripped(
    f"""\
def __eq__(self, other: object) -> bool:
{I}return isinstance(other, self.__class__) and self.__dict__ == other.__dict__

def __repr__(self) -> str:
{I}fields = ", ".join(
{II}f"{{key}}={{value!r}}" for key, value in self.__dict__.items()
{I})
{I}return f"{{self.__class__.__name__}}({{fields}})\""""
)


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def generate_struct(
    struct: model.Struct, context: python_common.ModuleContext
) -> Tuple[Optional[Stripped], Optional[Error]]:
    """
    Generate the class of the ``struct`` with its constructor, reader and writer.

    The exceptions derive from ``TException`` so that they can be raised.
    """
    where = f"{'exception' if struct.is_exception else 'struct'} {struct.name!r}"

    for field in struct.fields:
        if model.is_void(field.a_type):
            return None, SchemaError(
                where, f"The field {field.name!r} has the type void"
            )

    blocks = []  # type: List[Stripped]

    for generator in (_generate_constructor, _generate_read, _generate_write):
        block, error = generator(struct, context)
        if error is not None:
            if isinstance(error, SchemaError) and error.where is None:
                return None, SchemaError(where, error.message, error.underlying)

            return None, error

        assert block is not None
        blocks.append(block)

    blocks.append(_EQ_AND_REPR)

    if struct.is_exception:
        blocks.append(
            Stripped(
                f"""\
def __str__(self) -> str:
{I}return repr(self)"""
            )
        )

    writer = io.StringIO()
    if struct.is_exception:
        writer.write(f"class {struct.name}(TException):\n")
        writer.write(f'{I}"""Represent the exception {struct.name}."""\n')
    else:
        writer.write(f"class {struct.name}:\n")
        writer.write(f'{I}"""Represent the struct {struct.name}."""\n')

    for block in blocks:
        writer.write("\n")
        writer.write(textwrap.indent(block, I))
        writer.write("\n")

    return Stripped(writer.getvalue().rstrip()), None


# fmt: off
@ensure(
    lambda result: result.endswith('\n'),
    "Trailing newline mandatory for valid end-of-files"
)
# fmt: on
def generate(
    enums: Sequence[Stripped],
    structs: Sequence[Stripped],
    typedefs: Sequence[Stripped],
    runtime_module: python_common.QualifiedModuleName,
) -> str:
    """
    Generate the module with the data structures.

    The typedefs come last since they can alias the classes.
    """
    blocks = [
        Stripped('"""Provide the data structures of the schema."""'),
        python_common.WARNING,
        Stripped(
            f"""\
import enum
from typing import Any, Dict, List, Optional, Set

from {runtime_module} import TException, TType"""
        ),
        python_common.UNSET_DEFINITION,
    ]  # type: List[Stripped]

    blocks.extend(enums)
    blocks.extend(structs)

    if len(typedefs) > 0:
        blocks.append(Stripped("\n".join(typedefs)))

    blocks.append(python_common.WARNING)

    writer = io.StringIO()
    for i, block in enumerate(blocks):
        if i > 0:
            writer.write("\n\n\n")

        writer.write(block)

    writer.write("\n")

    return writer.getvalue()


# endregion
