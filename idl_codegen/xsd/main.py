"""Generate the XML Schema Definition (XSD) based on the schema."""

import pathlib
import xml.etree.ElementTree as ET

# noinspection PyUnresolvedReferences
import xml.dom.minidom
from typing import TextIO, MutableMapping, Optional, Tuple, List, Sequence, Mapping

from icontract import ensure

import idl_codegen.xsd
from idl_codegen import emitting, model, run
from idl_codegen.common import Error, SchemaError, Identifier, assert_never, error_message
from idl_codegen.xsd import naming as xsd_naming

assert idl_codegen.xsd.__doc__ == __doc__

_PRIMITIVE_MAP = {
    model.BaseKind.STRING: "xs:string",
    model.BaseKind.BOOL: "xs:boolean",
    model.BaseKind.BYTE: "xs:byte",
    model.BaseKind.I16: "xs:short",
    model.BaseKind.I32: "xs:int",
    model.BaseKind.I64: "xs:long",
    model.BaseKind.DOUBLE: "xs:decimal",
}
assert all(
    kind in _PRIMITIVE_MAP for kind in model.BaseKind if kind is not model.BaseKind.VOID
)

#: Name of the repeated element holding a key-value pair of a map
_MAP_ENTRY = Identifier("entry")


def _is_simple(a_type: model.TypeUnion) -> bool:
    """Check that the values of ``a_type`` can be represented as a simple type."""
    resolved = model.resolve(a_type)
    if isinstance(resolved, model.PrimitiveType):
        return resolved.kind is not model.BaseKind.VOID

    return isinstance(resolved, model.EnumType)


def _is_string_enum(a_type: model.TypeUnion) -> bool:
    return (
        isinstance(a_type, model.PrimitiveType)
        and a_type.string_enum_values is not None
    )


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def _type_name(a_type: model.TypeUnion) -> Tuple[Optional[str], Optional[Error]]:
    """
    Determine the name of the XSD type which ``a_type`` refers to.

    The typedefs keep their own names so that their restrictions are respected.
    """
    if isinstance(a_type, model.TypedefType):
        return a_type.typedef.name, None

    elif isinstance(a_type, model.PrimitiveType):
        if a_type.kind is model.BaseKind.VOID:
            return None, SchemaError(None, "There is no XSD type for void")

        return _PRIMITIVE_MAP[a_type.kind], None

    elif isinstance(a_type, model.EnumType):
        return "xs:int", None

    elif isinstance(a_type, (model.StructType, model.ExceptionType)):
        return a_type.struct.name, None

    elif isinstance(a_type, (model.ListType, model.SetType, model.MapType)):
        return None, Error(
            None, f"The container type {a_type} can only be defined in-line"
        )

    else:
        assert_never(a_type)

    raise AssertionError("Should not have gotten here")


def _generate_xs_restriction(a_type: model.TypeUnion) -> ET.Element:
    """Generate the restriction of a simple type, listing the enumerated strings."""
    if _is_string_enum(a_type):
        assert isinstance(a_type, model.PrimitiveType)
        assert a_type.string_enum_values is not None

        restriction = ET.Element("xs:restriction", {"base": "xs:string"})
        for value in a_type.string_enum_values:
            restriction.append(ET.Element("xs:enumeration", {"value": value}))

        return restriction

    base, error = _type_name(a_type)
    assert error is None, f"Expected a simple type, but got: {a_type}"
    assert base is not None

    return ET.Element("xs:restriction", {"base": base})


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def _generate_xs_attributes(
    attrs: Sequence[model.Field],
) -> Tuple[Optional[List[ET.Element]], Optional[Error]]:
    result = []  # type: List[ET.Element]

    for attr in attrs:
        if not _is_simple(attr.a_type):
            return None, Error(
                None,
                f"The attribute {attr.name!r} needs a simple type, "
                f"but got: {attr.a_type}",
            )

        if _is_string_enum(attr.a_type):
            xs_simple_type = ET.Element("xs:simpleType")
            xs_simple_type.append(_generate_xs_restriction(attr.a_type))

            xs_attribute = ET.Element("xs:attribute", {"name": attr.name})
            xs_attribute.append(xs_simple_type)
        else:
            attr_type, error = _type_name(attr.a_type)
            if error is not None:
                return None, error

            assert attr_type is not None
            xs_attribute = ET.Element(
                "xs:attribute", {"name": attr.name, "type": attr_type}
            )

        result.append(xs_attribute)

    return result, None


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def _generate_container_content(
    name: Identifier,
    container: model.ContainerTypeUnion,
) -> Tuple[Optional[List[ET.Element]], Optional[Error]]:
    """
    Generate the content of the complex type which holds the ``container``.

    The content is to be *appended* to the ``xs:complexType``.
    """
    if isinstance(container, (model.ListType, model.SetType)):
        if isinstance(container.items, (model.StructType, model.ExceptionType)):
            item_name = container.items.struct.name
        elif isinstance(container.items, model.TypedefType):
            item_name = container.items.typedef.name
        else:
            item_name = xsd_naming.list_item_element_name(name)

        xs_item, error = _generate_xs_element(
            name=item_name, a_type=container.items, list_element=True
        )
        if error is not None:
            return None, error

        assert xs_item is not None

        xs_sequence = ET.Element("xs:sequence")
        xs_sequence.append(xs_item)

        return [
            xs_sequence,
            ET.Element("xs:attribute", {"name": "list", "type": "xs:boolean"}),
        ], None

    elif isinstance(container, model.MapType):
        xs_entry_sequence = ET.Element("xs:sequence")
        for entry_name, entry_type in (
            (Identifier("key"), container.keys),
            (Identifier("value"), container.values),
        ):
            xs_part, error = _generate_xs_element(name=entry_name, a_type=entry_type)
            if error is not None:
                return None, error

            assert xs_part is not None
            xs_entry_sequence.append(xs_part)

        xs_entry_type = ET.Element("xs:complexType")
        xs_entry_type.append(xs_entry_sequence)

        xs_entry = ET.Element(
            "xs:element",
            {"name": _MAP_ENTRY, "minOccurs": "0", "maxOccurs": "unbounded"},
        )
        xs_entry.append(xs_entry_type)

        xs_sequence = ET.Element("xs:sequence")
        xs_sequence.append(xs_entry)

        return [xs_sequence], None

    else:
        assert_never(container)

    raise AssertionError("Should not have gotten here")


# fmt: off
@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
@ensure(
    lambda result:
    not (result[0] is not None)
    or result[0].tag == "xs:element"
)
# fmt: on
def _generate_xs_element(
    name: Identifier,
    a_type: model.TypeUnion,
    attrs: Optional[Sequence[model.Field]] = None,
    optional: bool = False,
    nillable: bool = False,
    list_element: bool = False,
) -> Tuple[Optional[ET.Element], Optional[Error]]:
    """
    Generate the ``xs:element`` for a value of ``a_type``.

    Void and containers are defined in-line with an anonymous complex type.
    The ``attrs`` extend the type of the element with ``xs:attribute``'s.
    """
    cardinality = dict()  # type: MutableMapping[str, str]
    if optional or list_element:
        cardinality["minOccurs"] = "0"
    if list_element:
        cardinality["maxOccurs"] = "unbounded"
    if nillable:
        cardinality["nillable"] = "true"

    xs_attributes = []  # type: List[ET.Element]
    if attrs is not None:
        some_attributes, error = _generate_xs_attributes(attrs)
        if error is not None:
            return None, error

        assert some_attributes is not None
        xs_attributes = some_attributes

    if model.is_void(a_type) or isinstance(
        a_type, (model.ListType, model.SetType, model.MapType)
    ):
        xs_element = ET.Element("xs:element", {"name": name, **cardinality})

        xs_complex_type = ET.Element("xs:complexType")
        if isinstance(a_type, (model.ListType, model.SetType, model.MapType)):
            content, error = _generate_container_content(name, a_type)
            if error is not None:
                return None, error

            assert content is not None
            xs_complex_type.extend(content)

        xs_complex_type.extend(xs_attributes)

        xs_element.append(xs_complex_type)
        return xs_element, None

    if attrs is None and _is_string_enum(a_type):
        xs_simple_type = ET.Element("xs:simpleType")
        xs_simple_type.append(_generate_xs_restriction(a_type))

        xs_element = ET.Element("xs:element", {"name": name, **cardinality})
        xs_element.append(xs_simple_type)
        return xs_element, None

    element_type, error = _type_name(a_type)
    if error is not None:
        return None, error

    assert element_type is not None

    if attrs is None:
        return (
            ET.Element(
                "xs:element", {"name": name, "type": element_type, **cardinality}
            ),
            None,
        )

    xs_extension = ET.Element("xs:extension", {"base": element_type})
    xs_extension.extend(xs_attributes)

    xs_content = ET.Element(
        "xs:simpleContent" if _is_simple(a_type) else "xs:complexContent"
    )
    xs_content.append(xs_extension)

    xs_complex_type = ET.Element("xs:complexType")
    xs_complex_type.append(xs_content)

    xs_element = ET.Element("xs:element", {"name": name, **cardinality})
    xs_element.append(xs_complex_type)
    return xs_element, None


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def _define_for_typedef(
    typedef: model.Typedef,
) -> Tuple[Optional[ET.Element], Optional[Error]]:
    """Generate the named simple or complex type for the ``typedef``."""
    target = typedef.a_type

    if model.is_void(target):
        return None, SchemaError(
            f"typedef {typedef.name!r}", "The typedef aliases void"
        )

    if _is_simple(target):
        xs_simple_type = ET.Element("xs:simpleType", {"name": typedef.name})
        xs_simple_type.append(_generate_xs_restriction(target))
        return xs_simple_type, None

    xs_complex_type = ET.Element("xs:complexType", {"name": typedef.name})

    if isinstance(target, (model.ListType, model.SetType, model.MapType)):
        content, error = _generate_container_content(typedef.name, target)
        if error is not None:
            return None, Error(
                f"typedef {typedef.name!r}",
                "Failed to define the container",
                [error],
            )

        assert content is not None
        xs_complex_type.extend(content)
        return xs_complex_type, None

    base, error = _type_name(target)
    if error is not None:
        return None, Error(
            f"typedef {typedef.name!r}", "Failed to determine the base type", [error]
        )

    assert base is not None

    xs_extension = ET.Element("xs:extension", {"base": base})
    xs_content = ET.Element("xs:complexContent")
    xs_content.append(xs_extension)
    xs_complex_type.append(xs_content)
    return xs_complex_type, None


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def _define_for_struct(
    struct: model.Struct,
) -> Tuple[Optional[ET.Element], Optional[Error]]:
    """Generate the ``xs:complexType`` for the ``struct`` or the exception."""
    where = f"{'exception' if struct.is_exception else 'struct'} {struct.name!r}"

    xs_fields = ET.Element("xs:all" if struct.xsd_all else "xs:sequence")

    for field in struct.fields:
        xs_element, error = _generate_xs_element(
            name=field.name,
            a_type=field.a_type,
            attrs=field.xsd_attrs,
            optional=field.xsd_optional or struct.xsd_all,
            nillable=field.xsd_nillable,
        )
        if error is not None:
            return None, Error(
                where, f"Failed to define the field {field.name!r}", [error]
            )

        assert xs_element is not None
        xs_fields.append(xs_element)

    xs_complex_type = ET.Element("xs:complexType", {"name": struct.name})
    xs_complex_type.append(xs_fields)

    return xs_complex_type, None


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def _define_for_service(
    service: model.Service,
) -> Tuple[Optional[List[ET.Element]], Optional[Error]]:
    """
    Generate the elements which the functions of the ``service`` may respond with.

    Every function contributes its response and the elements of its exceptions.
    """
    where = f"service {service.name!r}"

    elements = []  # type: List[ET.Element]

    for function in service.functions:
        xs_response, error = _generate_xs_element(
            name=xsd_naming.response_element_name(function.name),
            a_type=function.returns,
        )
        if error is not None:
            return None, Error(
                where,
                f"Failed to define the response of the function {function.name!r}",
                [error],
            )

        assert xs_response is not None
        elements.append(xs_response)

    for function in service.functions:
        for exception in function.exceptions:
            xs_exception, error = _generate_xs_element(
                name=exception.name, a_type=exception.a_type
            )
            if error is not None:
                return None, Error(
                    where,
                    f"Failed to define the exception {exception.name!r} "
                    f"of the function {function.name!r}",
                    [error],
                )

            assert xs_exception is not None
            elements.append(xs_exception)

    return elements, None


def _sort_by_tags_and_names_in_place(root: ET.Element) -> None:
    """
    Sort the children elements by tag and name attribute in place.

    This makes diffing and searching in the schema a bit easier.
    """
    simple_types = []  # type: List[ET.Element]
    complex_types = []  # type: List[ET.Element]
    miscellaneous = []  # type: List[ET.Element]
    elements = []  # type: List[ET.Element]

    for child in root:
        if child.tag == "xs:simpleType":
            simple_types.append(child)
        elif child.tag == "xs:complexType":
            complex_types.append(child)
        elif child.tag == "xs:element":
            elements.append(child)
        else:
            miscellaneous.append(child)

    for element_list in [simple_types, complex_types, miscellaneous, elements]:
        element_list.sort(key=lambda elt: elt.attrib.get("name", ""))

    children = simple_types + complex_types + elements + miscellaneous

    assert len(children) == len(root)
    root[:] = children


class XsdEmitter(emitting.Emitter):
    """
    Collect the type definitions and the response elements of a schema.

    Enumerations are represented as ``xs:int`` where they are used, while
    the constants have no counterpart in the XSD.
    """

    def __init__(self) -> None:
        """Initialize with an empty list of definitions."""
        self._schema = None  # type: Optional[model.Schema]
        self._definitions = []  # type: List[ET.Element]

    def open(self, schema: model.Schema) -> Optional[Error]:
        self._schema = schema
        self._definitions = []
        return None

    def generate_typedef(self, typedef: model.Typedef) -> Optional[Error]:
        definition, error = _define_for_typedef(typedef)
        if error is not None:
            return error

        assert definition is not None
        self._definitions.append(definition)
        return None

    def generate_enum(self, enumeration: model.Enumeration) -> Optional[Error]:
        return None

    def generate_constant(self, constant: model.Constant) -> Optional[Error]:
        return None

    def generate_struct(self, struct: model.Struct) -> Optional[Error]:
        definition, error = _define_for_struct(struct)
        if error is not None:
            return error

        assert definition is not None
        self._definitions.append(definition)
        return None

    def generate_exception(self, exception: model.Struct) -> Optional[Error]:
        return self.generate_struct(exception)

    def generate_service(self, service: model.Service) -> Optional[Error]:
        elements, error = _define_for_service(service)
        if error is not None:
            return error

        assert elements is not None
        self._definitions.extend(elements)
        return None

    def close(self) -> Tuple[Optional[Mapping[pathlib.Path, str]], Optional[Error]]:
        assert self._schema is not None, "Expected open() to be called before"

        attributes = {"xmlns:xs": "http://www.w3.org/2001/XMLSchema"}
        if self._schema.xsd_namespace is not None:
            attributes["targetNamespace"] = self._schema.xsd_namespace
            attributes["xmlns"] = self._schema.xsd_namespace
            attributes["elementFormDefault"] = "qualified"

        root = ET.Element("xs:schema", attributes)

        errors = []  # type: List[Error]

        # Tag name 🠒 (name 🠒 element)
        observed_definitions = (
            dict()
        )  # type: MutableMapping[str, MutableMapping[str, ET.Element]]

        for element in self._definitions:
            name = element.attrib["name"]

            observed_for_tag = observed_definitions.get(element.tag, None)
            if observed_for_tag is None:
                observed_for_tag = dict()
                observed_definitions[element.tag] = observed_for_tag

            observed_element = observed_for_tag.get(name, None)
            if observed_element is None:
                observed_for_tag[name] = element
                root.append(element)
                continue

            ours = ET.tostring(element, encoding="unicode", method="xml")
            theirs = ET.tostring(observed_element, encoding="unicode", method="xml")

            # NOTE: The same exception is usually declared by many functions.
            if ours == theirs:
                continue

            errors.append(
                Error(
                    None,
                    f"There are conflicting definitions in the schema "
                    f"with the name {name!r}:\n"
                    f"\n"
                    f"{ours}\n"
                    f"\n"
                    f"and\n"
                    f"\n"
                    f"{theirs}",
                )
            )

        if len(errors) > 0:
            return None, Error(
                None, "Failed to assemble the XML Schema Definition", errors
            )

        _sort_by_tags_and_names_in_place(root)

        text = ET.tostring(root, encoding="unicode", method="xml")

        # NOTE: This approach is slow, but effective. As long as the schema is not
        # too big, this should work.
        # noinspection PyUnresolvedReferences
        pretty_text = xml.dom.minidom.parseString(text).toprettyxml(indent="  ")

        return {pathlib.Path("schema.xsd"): pretty_text}, None


def execute(context: run.Context, stdout: TextIO, stderr: TextIO) -> int:
    """Generate the code."""
    files, error = emitting.emit(context.schema, XsdEmitter())

    if error is not None:
        run.write_error_report(
            message=f"Failed to generate the XML Schema Definition "
            f"based on {context.model_path}",
            errors=[error_message(error)],
            stderr=stderr,
        )
        return 1

    assert files is not None

    if not run.write_files(files, context.output_dir, stderr):
        return 1

    stdout.write(f"Code generated to: {context.output_dir}\n")
    return 0
