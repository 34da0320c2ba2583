"""Provide common functions shared among different Python code generation modules."""
import re
from typing import Optional, Tuple, cast, Mapping

from icontract import ensure, require

from idl_codegen import model
from idl_codegen.common import Stripped, Identifier, Error, SchemaError, assert_never

# See: https://python-reference.readthedocs.io/en/latest/docs/str/escapes.html
_BASE_ESCAPING_IN_PYTHON = {
    "\\": "\\\\",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}

_ESCAPING_IN_PYTHON_INCLUDING_DOUBLE_QUOTES = {
    **_BASE_ESCAPING_IN_PYTHON,
    **{'"': '\\"'},
}

_ESCAPING_IN_PYTHON_INCLUDING_SINGLE_QUOTES = {
    **_BASE_ESCAPING_IN_PYTHON,
    **{"'": "\\'"},
}


# fmt: off
@ensure(
    lambda result:
    (result.startswith("'") and result.endswith("'"))
    or (result.startswith('"') and result.endswith('"'))
)
# fmt: on
def string_literal(text: str) -> Stripped:
    """
    Generate a string literal from the ``text``.

    Check which quotes occur more often (single-quotes or double-quotes), and
    enclose the literal such that we need to escape as little as possible.

    >>> string_literal("something")
    "'something'"

    >>> string_literal("don't")
    '"don\\'t"'

    >>> string_literal("new\\nline")
    "'new\\\\nline'"
    """
    # noinspection PyUnusedLocal
    mapping = None  # type: Optional[Mapping[str, str]]

    if text.count("'") <= text.count('"'):
        mapping = _ESCAPING_IN_PYTHON_INCLUDING_SINGLE_QUOTES
        enclosing = "'"
    else:
        mapping = _ESCAPING_IN_PYTHON_INCLUDING_DOUBLE_QUOTES
        enclosing = '"'

    escaped = "".join(mapping.get(character, character) for character in text)

    return Stripped(f"{enclosing}{escaped}{enclosing}")


PRIMITIVE_TYPE_MAP = {
    model.BaseKind.BOOL: Stripped("bool"),
    model.BaseKind.BYTE: Stripped("int"),
    model.BaseKind.I16: Stripped("int"),
    model.BaseKind.I32: Stripped("int"),
    model.BaseKind.I64: Stripped("int"),
    model.BaseKind.DOUBLE: Stripped("float"),
    model.BaseKind.STRING: Stripped("str"),
}

# NOTE: ``void`` has no counterpart, neither as a Python type nor on the wire.
assert all(
    kind in PRIMITIVE_TYPE_MAP
    for kind in model.BaseKind
    if kind is not model.BaseKind.VOID
)

#: Map base kind 🠒 suffix of the protocol methods such as ``readI32``
PROTOCOL_SUFFIX_MAP = {
    model.BaseKind.BOOL: Identifier("Bool"),
    model.BaseKind.BYTE: Identifier("Byte"),
    model.BaseKind.I16: Identifier("I16"),
    model.BaseKind.I32: Identifier("I32"),
    model.BaseKind.I64: Identifier("I64"),
    model.BaseKind.DOUBLE: Identifier("Double"),
    model.BaseKind.STRING: Identifier("String"),
}
assert all(kind in PROTOCOL_SUFFIX_MAP for kind in PRIMITIVE_TYPE_MAP)


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def wire_kind(a_type: model.TypeUnion) -> Tuple[Optional[Stripped], Optional[Error]]:
    """
    Determine the wire kind of the ``a_type`` as a ``TType`` expression.

    Enumerations travel as ``I32``.
    """
    resolved = model.resolve(a_type)

    if isinstance(resolved, model.PrimitiveType):
        if resolved.kind not in PROTOCOL_SUFFIX_MAP:
            return None, SchemaError(
                None, f"There is no wire kind for the base type {resolved.kind.value}"
            )

        return Stripped(f"TType.{resolved.kind.value.upper()}"), None

    elif isinstance(resolved, model.EnumType):
        return Stripped("TType.I32"), None

    elif isinstance(resolved, (model.StructType, model.ExceptionType)):
        return Stripped("TType.STRUCT"), None

    elif isinstance(resolved, model.ListType):
        return Stripped("TType.LIST"), None

    elif isinstance(resolved, model.SetType):
        return Stripped("TType.SET"), None

    elif isinstance(resolved, model.MapType):
        return Stripped("TType.MAP"), None

    else:
        assert_never(resolved)

    raise AssertionError("Should not have gotten here")


def generate_type(
    a_type: model.TypeUnion,
    types_module: Optional[Identifier] = None,
) -> Stripped:
    """
    Generate the type annotation for the given type of the schema.

    If ``types_module`` is specified, it is used as prefix for the structs.
    """
    resolved = model.resolve(a_type)

    if isinstance(resolved, model.PrimitiveType):
        if resolved.kind is model.BaseKind.VOID:
            return Stripped("None")

        return PRIMITIVE_TYPE_MAP[resolved.kind]

    elif isinstance(resolved, model.EnumType):
        # NOTE: The values are read from the wire as plain integers, so that
        # the values unknown to this version of the schema survive.
        return Stripped("int")

    elif isinstance(resolved, (model.StructType, model.ExceptionType)):
        # NOTE: If no ``types_module``, we mark all the structs as string literals
        # to avoid problems caused by lack of forward declaration in Python.
        if types_module is None:
            return Stripped(repr(resolved.struct.name))

        return Stripped(f"{types_module}.{resolved.struct.name}")

    elif isinstance(resolved, model.ListType):
        return Stripped(f"List[{generate_type(resolved.items, types_module)}]")

    elif isinstance(resolved, model.SetType):
        return Stripped(f"Set[{generate_type(resolved.items, types_module)}]")

    elif isinstance(resolved, model.MapType):
        keys = generate_type(resolved.keys, types_module)
        values = generate_type(resolved.values, types_module)
        return Stripped(f"Dict[{keys}, {values}]")

    else:
        assert_never(resolved)

    raise AssertionError("Should not have gotten here")


INDENT = "    "
INDENT2 = INDENT * 2
INDENT3 = INDENT * 3

WARNING = Stripped(
    """\
# This code has been automatically generated by idl-codegen.
# Do NOT edit or append."""
)

#: Name of the marker for the constructor arguments which have not been given
UNSET = Identifier("_UNSET")

UNSET_DEFINITION = Stripped(
    f"""\
#: Mark the constructor arguments which have not been given
{UNSET} = object()  # type: Any"""
)

QUALIFIED_MODULE_NAME_RE = re.compile(
    r"[a-zA-Z_][a-zA-Z_0-9]*(\.[a-zA-Z_][a-zA-Z_0-9]*)*"
)


class QualifiedModuleName(str):
    """Capture a qualified name of a module."""

    @require(lambda identifier: QUALIFIED_MODULE_NAME_RE.fullmatch(identifier))
    def __new__(cls, identifier: str) -> "QualifiedModuleName":
        return cast(QualifiedModuleName, identifier)


class TemporaryNames:
    """
    Generate unique names of the temporary variables within a generated module.

    The counter is shared by all the stems so that no two names in the same module
    coincide.

    >>> names = TemporaryNames()

    >>> names.next("size")
    '_size0'

    >>> names.next("elem")
    '_elem1'

    >>> names.next("size")
    '_size2'
    """

    def __init__(self) -> None:
        """Initialize with the zero counter."""
        self.counter = 0

    def next(self, stem: str) -> Identifier:
        """Generate the next variable name based on the ``stem``."""
        result = Identifier(f"_{stem}{self.counter}")
        self.counter += 1
        return result


class ModuleContext:
    """Represent the state of a generated Python module."""

    #: Name of the module with the structs, if the generated code lives elsewhere
    types_module: Optional[Identifier]

    #: Generator of the names for the temporary variables
    names: TemporaryNames

    def __init__(self, types_module: Optional[Identifier] = None) -> None:
        """Initialize with the given values and a fresh name generator."""
        self.types_module = types_module
        self.names = TemporaryNames()

    def qualified(self, struct: model.Struct) -> Stripped:
        """Refer to the class of the ``struct`` from within the module."""
        if self.types_module is None:
            return Stripped(struct.name)

        return Stripped(f"{self.types_module}.{struct.name}")

