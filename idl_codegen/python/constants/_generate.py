"""Render the literal values of the schema as Python expressions."""
import io
import math
import textwrap
from typing import Optional, List, Tuple, Sequence, Set

from icontract import ensure

from idl_codegen import model
from idl_codegen.common import (
    Error,
    SchemaError,
    UnsupportedConstructError,
    Stripped,
    Identifier,
    assert_never,
)
from idl_codegen.python import common as python_common
from idl_codegen.python.common import INDENT as I

# region Rendering

#: Literals longer than this are split over multiple lines
_MAX_LINE_LENGTH = 70


def _enclose(opening: str, items: Sequence[Stripped], closing: str) -> Stripped:
    """Enclose the comma-separated ``items``, on one line if they fit."""
    if len(items) == 0:
        return Stripped(f"{opening}{closing}")

    one_line = f"{opening}{', '.join(items)}{closing}"
    if len(one_line) <= _MAX_LINE_LENGTH and "\n" not in one_line:
        return Stripped(one_line)

    writer = io.StringIO()
    writer.write(f"{opening}\n")
    for item in items:
        writer.write(textwrap.indent(item, I))
        writer.write(",\n")
    writer.write(closing)

    return Stripped(writer.getvalue())


def _unsupported(
    a_type: model.TypeUnion, value: model.ConstantValueUnion
) -> UnsupportedConstructError:
    return UnsupportedConstructError(
        None, f"There is no rule to render the value {value!r} of the type {a_type}"
    )


def _render_double(value: float) -> Stripped:
    """
    Render the float ``value`` so that it reads back exactly.

    >>> _render_double(2.5)
    '2.5'

    >>> _render_double(float("inf"))
    "float('inf')"
    """
    if math.isfinite(value):
        return Stripped(repr(value))

    return Stripped(f"float({repr(str(value))})")


# fmt: off
@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
# fmt: on
def render(
    a_type: model.TypeUnion,
    value: model.ConstantValueUnion,
    types_module: Optional[Identifier] = None,
) -> Tuple[Optional[Stripped], Optional[Error]]:
    """
    Render the literal ``value`` of ``a_type`` as a Python expression.

    The rendering is directed by the resolved type. Doubles are an exception and
    follow the tag of the literal, so an integer literal stays an integer.

    If ``types_module`` is specified, it is used as prefix for the structs.
    """
    resolved = model.resolve(a_type)

    if isinstance(resolved, model.PrimitiveType):
        kind = resolved.kind

        if kind is model.BaseKind.STRING:
            if isinstance(value, model.ConstantString):
                return python_common.string_literal(value.value), None

        elif kind is model.BaseKind.BOOL:
            if isinstance(value, model.ConstantInteger):
                return Stripped("True" if value.value else "False"), None

        elif kind in (
            model.BaseKind.BYTE,
            model.BaseKind.I16,
            model.BaseKind.I32,
            model.BaseKind.I64,
        ):
            if isinstance(value, model.ConstantInteger):
                return Stripped(str(value.value)), None

        elif kind is model.BaseKind.DOUBLE:
            if isinstance(value, model.ConstantInteger):
                return Stripped(str(value.value)), None

            elif isinstance(value, model.ConstantDouble):
                return _render_double(value.value), None

        elif kind is model.BaseKind.VOID:
            pass

        else:
            assert_never(kind)

        return None, _unsupported(a_type, value)

    elif isinstance(resolved, model.EnumType):
        if isinstance(value, model.ConstantInteger):
            return Stripped(str(value.value)), None

        return None, _unsupported(a_type, value)

    elif isinstance(resolved, (model.StructType, model.ExceptionType)):
        if not isinstance(value, model.ConstantStruct):
            return None, _unsupported(a_type, value)

        struct = resolved.struct

        arguments = []  # type: List[Stripped]
        for name, field_value in value.entries:
            field = struct.fields_by_name.get(Identifier(name), None)
            if field is None:
                return None, SchemaError(
                    f"struct {struct.name!r}",
                    f"type error: {struct.name} has no field {name}",
                )

            rendered, error = render(field.a_type, field_value, types_module)
            if error is not None:
                return None, error

            assert rendered is not None
            arguments.append(Stripped(f"{field.name}={rendered}"))

        qualified = (
            struct.name if types_module is None else f"{types_module}.{struct.name}"
        )
        return _enclose(f"{qualified}(", arguments, ")"), None

    elif isinstance(resolved, model.ListType):
        if not isinstance(value, model.ConstantList):
            return None, _unsupported(a_type, value)

        items = []  # type: List[Stripped]
        for item in value.items:
            rendered, error = render(resolved.items, item, types_module)
            if error is not None:
                return None, error

            assert rendered is not None
            items.append(rendered)

        return _enclose("[", items, "]"), None

    elif isinstance(resolved, model.SetType):
        # NOTE: A set is written with the list syntax in the schema language,
        # so we accept both literals.
        if not isinstance(value, (model.ConstantSet, model.ConstantList)):
            return None, _unsupported(a_type, value)

        items = []
        observed = set()  # type: Set[str]
        for item in value.items:
            rendered, error = render(resolved.items, item, types_module)
            if error is not None:
                return None, error

            assert rendered is not None
            if rendered in observed:
                continue

            observed.add(rendered)
            items.append(rendered)

        if len(items) == 0:
            return Stripped("set()"), None

        return _enclose("{", items, "}"), None

    elif isinstance(resolved, model.MapType):
        if not isinstance(value, model.ConstantMap):
            return None, _unsupported(a_type, value)

        entries = []  # type: List[Stripped]
        for key, mapped in value.entries:
            rendered_key, error = render(resolved.keys, key, types_module)
            if error is not None:
                return None, error

            rendered_value, error = render(resolved.values, mapped, types_module)
            if error is not None:
                return None, error

            assert rendered_key is not None
            assert rendered_value is not None
            entries.append(Stripped(f"{rendered_key}: {rendered_value}"))

        return _enclose("{", entries, "}"), None

    else:
        assert_never(resolved)

    raise AssertionError("Should not have gotten here")


# endregion

# region Generation


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def generate_constant(
    constant: model.Constant, types_module: Optional[Identifier] = None
) -> Tuple[Optional[Stripped], Optional[Error]]:
    """Generate the definition of the ``constant``."""
    rendered, error = render(constant.a_type, constant.value, types_module)
    if error is not None:
        return None, Error(
            f"constant {constant.name!r}",
            "Failed to render the value of the constant",
            [error],
        )

    assert rendered is not None

    type_anno = python_common.generate_type(constant.a_type, types_module)

    return Stripped(f"{constant.name}: Final[{type_anno}] = {rendered}"), None


# fmt: off
@ensure(
    lambda result: result.endswith('\n'),
    "Trailing newline mandatory for valid end-of-files"
)
# fmt: on
def generate(definitions: Sequence[Stripped]) -> str:
    """Generate the module with the constant ``definitions``."""
    blocks = [
        Stripped('"""Provide constant values of the schema."""'),
        python_common.WARNING,
        Stripped(
            """\
from typing import Dict, Final, List, Set

from . import ttypes"""
        ),
    ]  # type: List[Stripped]

    blocks.extend(definitions)

    blocks.append(python_common.WARNING)

    writer = io.StringIO()
    for i, block in enumerate(blocks):
        if i > 0:
            writer.write("\n\n")

        writer.write(block)

    writer.write("\n")

    return writer.getvalue()


# endregion
