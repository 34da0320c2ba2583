"""Generate names from the schema identifiers for the respective targets."""
import re

from icontract import ensure

from idl_codegen.common import Identifier

_WORD_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


@ensure(lambda result: result == result.lower())
def lower_snake_case(identifier: Identifier) -> Identifier:
    """
    Convert the identifier to a ``lower_snake_case``.

    Both ``CamelCase`` and ``snake_case`` identifiers are split into words.

    >>> lower_snake_case(Identifier("Calculator"))
    'calculator'

    >>> lower_snake_case(Identifier("SharedService"))
    'shared_service'

    >>> lower_snake_case(Identifier("HTTPServer"))
    'http_server'

    >>> lower_snake_case(Identifier("get_Time"))
    'get_time'
    """
    parts = [
        part for part in _WORD_BOUNDARY_RE.sub("_", identifier).split("_") if part
    ]

    if len(parts) == 0:
        return Identifier(identifier.lower())

    return Identifier("_".join(part.lower() for part in parts))
