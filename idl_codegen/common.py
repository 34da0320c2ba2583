"""Provide common functions and types for the code generation."""
import inspect
import io
import re
import textwrap
from typing import (
    Optional,
    cast,
    List,
    NoReturn,
    Any,
)

from icontract import require, DBC


class Rstripped(str):
    """
    Represent a block of text without trailing whitespace.

    The block can be both single-line or multi-line.
    """

    @require(
        lambda block: not block.endswith("\n")
        and not block.endswith(" ")
        and not block.endswith("\t")
    )
    def __new__(cls, block: str) -> "Rstripped":
        return cast(Rstripped, block)


def is_stripped(text: str) -> bool:
    """Check that the ``text`` does not have leading and trailing whitespace."""
    return (
        not text.startswith("\n")
        and not text.startswith(" ")
        and not text.startswith("\t")
    ) and (
        not text.endswith("\n") and not text.endswith(" ") and not text.endswith("\t")
    )


class Stripped(Rstripped):
    """
    Represent a block of text without leading and trailing whitespace.

    The block of text can be both single-line and multi-line.
    """

    @require(lambda block: is_stripped(block))
    def __new__(cls, block: str) -> "Stripped":
        return cast(Stripped, block)


# noinspection RegExpSimplifiable
IDENTIFIER_RE = re.compile(r"[a-zA-Z_][a-zA-Z_0-9]*")


class Identifier(DBC, Stripped):
    """Represent an identifier."""

    @require(lambda value: IDENTIFIER_RE.fullmatch(value))
    def __new__(cls, value: str) -> "Identifier":
        return cast(Identifier, value)


class Error:
    """
    Represent an unexpected input.

    For example, the schema can be well-formed, but the target can only express
    a subset of it.

    The ``where`` describes the offending entity in human-readable form such as
    ``struct 'Point'``, so that the user can trace the error back to the schema.
    """

    def __init__(
        self,
        where: Optional[str],
        message: str,
        underlying: Optional[List["Error"]] = None,
    ) -> None:
        self.where = where
        self.message = message
        self.underlying = underlying

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"where={self.where!r}, "
            f"message={self.message!r}, "
            f"underlying={self.underlying!r})"
        )


class SchemaError(Error):
    """
    Signal that the schema can not be generated as given.

    For example, a struct literal refers to a field which the struct lacks, or
    a field resolves to ``void``.
    """


class UnsupportedConstructError(Error):
    """Signal a combination of a type and a value for which we have no rule."""


def error_message(error: Error) -> str:
    """Generate the error message including all the underlying errors."""
    prefix = ""
    if error.where is not None:
        prefix = f"In {error.where}: "

    if error.underlying is None or len(error.underlying) == 0:
        return f"{prefix}{error.message}"
    else:
        writer = io.StringIO()
        writer.write(f"{prefix}{error.message}\n")
        for i, underlying_error in enumerate(error.underlying):
            if i > 0:
                writer.write("\n")
            indented = textwrap.indent(error_message(underlying_error), "  ")
            writer.write(indented)

        return writer.getvalue()


def assert_never(value: NoReturn) -> NoReturn:
    """
    Signal to mypy to perform an exhaustive matching.

    Please see the following page for more details:
    https://hakibenita.com/python-mypy-exhaustive-checking
    """
    assert False, f"Unhandled value: {value} ({type(value).__name__})"


def indent_but_first_line(text: str, indention: str) -> str:
    """
    Indent all but the first of the given ``text`` by ``indention``.

    For example, this helps you insert indented blocks into formatted string literals.
    """
    indented_lines = []  # type: List[str]
    for i, line in enumerate(text.splitlines()):
        if i == 0:
            indented_lines.append(line)
        else:
            if len(line) > 0:
                indented_lines.append(indention + line)
            else:
                indented_lines.append(line)

    return "\n".join(indented_lines)


def assert_union_of_descendants_exhaustive(union: Any, base_class: Any) -> None:
    """
    Check that the ``union`` covers all the concrete subclasses of ``base_class``.

    Make sure you put the assertion at the end of the module where no new classes are
    defined.

    See also for more details: https://hakibenita.com/python-mypy-exhaustive-checking
    """
    if inspect.isclass(union):
        union_map = {id(union): union}
    elif hasattr(union, "__args__"):
        union_map = {id(cls): cls for cls in union.__args__}
    else:
        raise NotImplementedError(f"We do not know how to handle the union: {union}")

    # We have to recursively figure out the subclasses.
    concrete_subclasses = []  # type: List[Any]

    stack = base_class.__subclasses__()  # type: List[Any]

    while len(stack) > 0:
        sub_cls = stack.pop()
        if not inspect.isabstract(sub_cls):
            concrete_subclasses.append(sub_cls)

        stack.extend(sub_cls.__subclasses__())

    subclass_map = {id(sub_cls): sub_cls for sub_cls in concrete_subclasses}

    union_set = set(union_map.keys())
    subclass_set = set(subclass_map.keys())

    if union_set != subclass_set:
        union_diff = union_set.difference(subclass_set)
        union_diff_names = [union_map[cls_id].__name__ for cls_id in union_diff]

        subclass_diff = subclass_set.difference(union_set)
        subclass_diff_names = [
            subclass_map[cls_id].__name__ for cls_id in subclass_diff
        ]

        raise AssertionError(
            f"The union and the concrete sub-classes "
            f"of {base_class.__name__!r} differ. "
            f"Listed in the union, but not sub-classes: {union_diff_names}; "
            f"sub-classes not listed in the union: {subclass_diff_names}"
        )
