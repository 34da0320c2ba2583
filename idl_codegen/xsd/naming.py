"""
Generate identifiers internal to an XML Schema Definition (XSD).

Unlike :py:mod:`idl_codegen.naming`, which is used with different generators,
these identifiers are used only for the XSD.
"""
from idl_codegen.common import Identifier


def list_item_element_name(identifier: Identifier) -> Identifier:
    """
    Generate the name of the repeated element which holds the items of a container.

    >>> list_item_element_name(Identifier("numbers"))
    'numbers_elt'
    """
    return Identifier(f"{identifier}_elt")


def response_element_name(identifier: Identifier) -> Identifier:
    """
    Generate the name of the element which holds the outcome of a function.

    >>> response_element_name(Identifier("add"))
    'add_response'
    """
    return Identifier(f"{identifier}_response")
