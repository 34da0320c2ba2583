"""Load the schema from the JSON document produced by the front-end."""
import json
import pathlib
from typing import (
    Any,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    Union,
)

from icontract import ensure

from idl_codegen.common import Error, Identifier, IDENTIFIER_RE, assert_never
from idl_codegen.model import _types, _hierarchy

_ShellUnion = Union[
    _types.Typedef,
    _types.Enumeration,
    _types.Struct,
    _types.Service,
    _types.Constant,
]


def _check_keys(
    jsonable: Any,
    required: Sequence[str],
    optional: Sequence[str],
    where: str,
) -> Optional[Error]:
    """Check that ``jsonable`` is an object with exactly the expected properties."""
    if not isinstance(jsonable, dict):
        return Error(where, f"Expected a JSON object, but got: {jsonable!r}")

    for key in required:
        if key not in jsonable:
            return Error(where, f"The required property is missing: {key!r}")

    expected = set(required).union(optional)
    for key in jsonable:
        if key not in expected:
            return Error(where, f"Unexpected property: {key!r}")

    return None


def _check_identifier(jsonable: Any, where: str) -> Optional[Error]:
    if not isinstance(jsonable, str) or IDENTIFIER_RE.fullmatch(jsonable) is None:
        return Error(where, f"Expected a valid identifier, but got: {jsonable!r}")

    return None


def _check_flag(jsonable: Mapping[str, Any], key: str, where: str) -> Optional[Error]:
    value = jsonable.get(key, False)
    if not isinstance(value, bool):
        return Error(where, f"Expected {key!r} to be a boolean, but got: {value!r}")

    return None


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def _parse_type(
    jsonable: Any, declarations: Mapping[str, _ShellUnion], where: str
) -> Tuple[Optional[_types.TypeUnion], Optional[Error]]:
    """Parse a type which refers to the already created ``declarations``."""
    if isinstance(jsonable, str):
        kind = _types.STR_TO_BASE_KIND.get(jsonable, None)
        if kind is not None:
            return _types.PrimitiveType(kind=kind), None

        declaration = declarations.get(jsonable, None)
        if declaration is None:
            return None, Error(where, f"The type is not defined: {jsonable!r}")

        if isinstance(declaration, _types.Typedef):
            return _types.TypedefType(typedef=declaration), None

        elif isinstance(declaration, _types.Enumeration):
            return _types.EnumType(enumeration=declaration), None

        elif isinstance(declaration, _types.Struct):
            if declaration.is_exception:
                return _types.ExceptionType(struct=declaration), None

            return _types.StructType(struct=declaration), None

        elif isinstance(declaration, (_types.Service, _types.Constant)):
            return None, Error(
                where,
                f"Expected {jsonable!r} to refer to a type, "
                f"but it refers to a {type(declaration).__name__.lower()}",
            )

        else:
            assert_never(declaration)

    if not isinstance(jsonable, dict) or len(jsonable) != 1:
        return None, Error(
            where,
            f"Expected a type as a string or as an object with a single property, "
            f"but got: {jsonable!r}",
        )

    tag, value = next(iter(jsonable.items()))

    if tag in ("list", "set"):
        items, error = _parse_type(value, declarations, where)
        if error is not None:
            return None, error

        assert items is not None
        if tag == "list":
            return _types.ListType(items=items), None

        return _types.SetType(items=items), None

    elif tag == "map":
        error = _check_keys(value, ["key", "value"], [], where)
        if error is not None:
            return None, error

        keys, error = _parse_type(value["key"], declarations, where)
        if error is not None:
            return None, error

        values, error = _parse_type(value["value"], declarations, where)
        if error is not None:
            return None, error

        assert keys is not None
        assert values is not None
        return _types.MapType(keys=keys, values=values), None

    elif tag == "string_enum":
        if (
            not isinstance(value, list)
            or len(value) == 0
            or not all(isinstance(item, str) for item in value)
        ):
            return None, Error(
                where,
                f"Expected the string enumeration to be a non-empty list of strings, "
                f"but got: {value!r}",
            )

        if len(set(value)) != len(value):
            return None, Error(
                where, f"Expected unique values in the string enumeration: {value!r}"
            )

        return (
            _types.PrimitiveType(
                kind=_types.BaseKind.STRING, string_enum_values=list(value)
            ),
            None,
        )

    return None, Error(where, f"Unexpected type tag: {tag!r}")


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def _parse_value(
    jsonable: Any, where: str
) -> Tuple[Optional[_types.ConstantValueUnion], Optional[Error]]:
    """Parse a tagged constant value."""
    if not isinstance(jsonable, dict) or len(jsonable) != 1:
        return None, Error(
            where,
            f"Expected a constant value as an object with a single tag, "
            f"but got: {jsonable!r}",
        )

    tag, value = next(iter(jsonable.items()))

    if tag == "int":
        # NOTE: ``bool`` is a subclass of ``int`` in Python.
        if not isinstance(value, int) or isinstance(value, bool):
            return None, Error(where, f"Expected an integer, but got: {value!r}")

        return _types.ConstantInteger(value=value), None

    elif tag == "double":
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return None, Error(where, f"Expected a number, but got: {value!r}")

        return _types.ConstantDouble(value=float(value)), None

    elif tag == "string":
        if not isinstance(value, str):
            return None, Error(where, f"Expected a string, but got: {value!r}")

        return _types.ConstantString(value=value), None

    elif tag in ("list", "set"):
        if not isinstance(value, list):
            return None, Error(where, f"Expected a {tag} as an array, got: {value!r}")

        items = []  # type: List[_types.ConstantValueUnion]
        for item_jsonable in value:
            item, error = _parse_value(item_jsonable, where)
            if error is not None:
                return None, error

            assert item is not None
            items.append(item)

        if tag == "list":
            return _types.ConstantList(items=items), None

        return _types.ConstantSet(items=items), None

    elif tag in ("map", "struct"):
        if not isinstance(value, list) or not all(
            isinstance(pair, list) and len(pair) == 2 for pair in value
        ):
            return None, Error(
                where,
                f"Expected a {tag} as an array of pairs, but got: {value!r}",
            )

        if tag == "map":
            entries = []  # type: List[Tuple[_types.ConstantValueUnion, _types.ConstantValueUnion]]
            for key_jsonable, value_jsonable in value:
                key, error = _parse_value(key_jsonable, where)
                if error is not None:
                    return None, error

                mapped, error = _parse_value(value_jsonable, where)
                if error is not None:
                    return None, error

                assert key is not None
                assert mapped is not None
                entries.append((key, mapped))

            return _types.ConstantMap(entries=entries), None

        field_entries = []  # type: List[Tuple[str, _types.ConstantValueUnion]]
        for name, value_jsonable in value:
            if not isinstance(name, str):
                return None, Error(
                    where, f"Expected a field name as a string, but got: {name!r}"
                )

            field_value, error = _parse_value(value_jsonable, where)
            if error is not None:
                return None, error

            assert field_value is not None
            field_entries.append((name, field_value))

        return _types.ConstantStruct(entries=field_entries), None

    return None, Error(where, f"Unexpected tag of a constant value: {tag!r}")


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def _parse_field(
    jsonable: Any,
    declarations: Mapping[str, _ShellUnion],
    where: str,
    field_id: Optional[int] = None,
) -> Tuple[Optional[_types.Field], Optional[Error]]:
    """
    Parse a field of a struct, or an argument or an exception of a function.

    If ``field_id`` is given, the field has no explicit ID in the document.
    """
    required = ["name", "type"]
    if field_id is None:
        required.append("id")

    error = _check_keys(
        jsonable,
        required,
        ["default", "xsd_optional", "xsd_nillable", "xsd_attrs"],
        where,
    )
    if error is not None:
        return None, error

    error = _check_identifier(jsonable["name"], where)
    if error is not None:
        return None, error

    name = Identifier(jsonable["name"])
    where = f"field {name!r} of {where}"

    if field_id is None:
        field_id = jsonable["id"]
        if (
            not isinstance(field_id, int)
            or isinstance(field_id, bool)
            or field_id < 0
        ):
            return None, Error(
                where, f"Expected a non-negative integer ID, but got: {field_id!r}"
            )

    a_type, error = _parse_type(jsonable["type"], declarations, where)
    if error is not None:
        return None, error

    assert a_type is not None

    default = None  # type: Optional[_types.ConstantValueUnion]
    if "default" in jsonable:
        default, error = _parse_value(jsonable["default"], where)
        if error is not None:
            return None, error

    for flag in ("xsd_optional", "xsd_nillable"):
        error = _check_flag(jsonable, flag, where)
        if error is not None:
            return None, error

    xsd_attrs = None  # type: Optional[List[_types.Field]]
    if "xsd_attrs" in jsonable:
        if not isinstance(jsonable["xsd_attrs"], list):
            return None, Error(
                where, f"Expected xsd_attrs to be an array: {jsonable['xsd_attrs']!r}"
            )

        xsd_attrs = []
        for i, attr_jsonable in enumerate(jsonable["xsd_attrs"]):
            attr, error = _parse_field(
                attr_jsonable, declarations, where, field_id=i + 1
            )
            if error is not None:
                return None, error

            assert attr is not None
            xsd_attrs.append(attr)

    return (
        _types.Field(
            name=name,
            field_id=field_id,
            a_type=a_type,
            default=default,
            xsd_optional=jsonable.get("xsd_optional", False),
            xsd_nillable=jsonable.get("xsd_nillable", False),
            xsd_attrs=xsd_attrs,
        ),
        None,
    )


def _check_fields_unique(fields: Sequence[_types.Field], where: str) -> List[Error]:
    errors = []  # type: List[Error]

    observed_ids = set()  # type: Set[int]
    observed_names = set()  # type: Set[str]
    for field in fields:
        if field.field_id in observed_ids:
            errors.append(
                Error(where, f"The field ID {field.field_id} is not unique")
            )
        observed_ids.add(field.field_id)

        if field.name in observed_names:
            errors.append(Error(where, f"The field name {field.name!r} is not unique"))
        observed_names.add(field.name)

    return errors


def _find_typedef_cycle(typedef: _types.Typedef) -> bool:
    """Check whether the ``typedef`` refers to itself through typedefs or containers."""
    visited = set()  # type: Set[int]
    stack = [typedef.a_type]  # type: List[_types.TypeUnion]

    while len(stack) > 0:
        a_type = stack.pop()

        if isinstance(a_type, _types.TypedefType):
            if a_type.typedef is typedef:
                return True

            if id(a_type.typedef) not in visited:
                visited.add(id(a_type.typedef))
                stack.append(a_type.typedef.a_type)

        elif isinstance(a_type, (_types.ListType, _types.SetType)):
            stack.append(a_type.items)

        elif isinstance(a_type, _types.MapType):
            stack.append(a_type.keys)
            stack.append(a_type.values)

        else:
            pass

    return False


def _parse_declaration_list(
    jsonable: Mapping[str, Any], key: str
) -> Tuple[Sequence[Any], Optional[Error]]:
    value = jsonable.get(key, [])
    if not isinstance(value, list):
        return [], Error(None, f"Expected {key!r} to be an array, but got: {value!r}")

    return value, None


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def _create_shells(
    jsonable: Mapping[str, Any]
) -> Tuple[Optional[MutableMapping[str, _ShellUnion]], Optional[List[Error]]]:
    """
    Create the declarations without any references so that they can be referred to.

    The enumerations are complete already since they refer to nothing.
    """
    errors = []  # type: List[Error]
    shells = dict()  # type: MutableMapping[str, _ShellUnion]

    for key in ("typedefs", "enums", "structs", "services"):
        items, error = _parse_declaration_list(jsonable, key)
        if error is not None:
            errors.append(error)
            continue

        for item in items:
            where = f"{key[:-1]} {item.get('name')!r}" if isinstance(item, dict) else key
            if not isinstance(item, dict) or "name" not in item:
                errors.append(Error(where, f"Expected an object with a name: {item!r}"))
                continue

            error = _check_identifier(item["name"], where)
            if error is not None:
                errors.append(error)
                continue

            name = Identifier(item["name"])
            if name in shells:
                errors.append(Error(where, f"The name is not unique: {name!r}"))
                continue

            shell = None  # type: Optional[_ShellUnion]
            if key == "typedefs":
                shell = _types.Typedef(name=name)

            elif key == "enums":
                error = _check_keys(item, ["name", "literals"], [], where)
                if error is None and not isinstance(item["literals"], list):
                    error = Error(where, "Expected the literals to be an array")

                if error is not None:
                    errors.append(error)
                    continue

                literals = []  # type: List[_types.EnumerationLiteral]
                for literal_jsonable in item["literals"]:
                    error = _check_keys(literal_jsonable, ["name"], ["value"], where)
                    if error is None:
                        error = _check_identifier(literal_jsonable["name"], where)

                    value = literal_jsonable.get("value", None)
                    if error is None and value is not None and (
                        not isinstance(value, int) or isinstance(value, bool)
                    ):
                        error = Error(
                            where, f"Expected an integer literal value: {value!r}"
                        )

                    if error is not None:
                        errors.append(error)
                        break

                    literals.append(
                        _types.EnumerationLiteral(
                            name=Identifier(literal_jsonable["name"]), value=value
                        )
                    )
                else:
                    if len(set(literal.name for literal in literals)) != len(literals):
                        errors.append(Error(where, "The literal names are not unique"))
                        continue

                    shell = _types.Enumeration(name=name, literals=literals)

                if shell is None:
                    continue

            elif key == "structs":
                error = _check_keys(
                    item, ["name"], ["exception", "xsd_all", "fields"], where
                )
                if error is None:
                    error = _check_flag(item, "exception", where)
                if error is None:
                    error = _check_flag(item, "xsd_all", where)

                if error is not None:
                    errors.append(error)
                    continue

                shell = _types.Struct(
                    name=name,
                    is_exception=item.get("exception", False),
                    xsd_all=item.get("xsd_all", False),
                )

            elif key == "services":
                shell = _types.Service(name=name)

            else:
                raise AssertionError(f"Unexpected key: {key!r}")

            shells[name] = shell

    if len(errors) > 0:
        return None, errors

    return shells, None


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def _parse_function(
    jsonable: Any, declarations: Mapping[str, _ShellUnion], where: str
) -> Tuple[Optional[_types.Function], Optional[Error]]:
    """Parse a function; the arguments and the exceptions are numbered from 1."""
    error = _check_keys(
        jsonable, ["name", "returns"], ["arguments", "exceptions", "oneway"], where
    )
    if error is None:
        error = _check_identifier(jsonable["name"], where)
    if error is None:
        error = _check_flag(jsonable, "oneway", where)
    if error is not None:
        return None, error

    name = Identifier(jsonable["name"])
    where = f"function {name!r} of {where}"

    returns, error = _parse_type(jsonable["returns"], declarations, where)
    if error is not None:
        return None, error

    assert returns is not None

    field_lists = []  # type: List[List[_types.Field]]
    for key in ("arguments", "exceptions"):
        fields = []  # type: List[_types.Field]

        items = jsonable.get(key, [])
        if not isinstance(items, list):
            return None, Error(where, f"Expected {key!r} to be an array: {items!r}")

        for i, field_jsonable in enumerate(items):
            field, error = _parse_field(
                field_jsonable, declarations, where, field_id=i + 1
            )
            if error is not None:
                return None, error

            assert field is not None
            fields.append(field)

        errors = _check_fields_unique(fields, where)
        if len(errors) > 0:
            return None, errors[0]

        field_lists.append(fields)

    arguments, exceptions = field_lists

    for field in exceptions:
        if not isinstance(_types.resolve(field.a_type), _types.ExceptionType):
            return None, Error(
                where,
                f"Expected the thrown {field.name!r} to be an exception, "
                f"but got: {field.a_type}",
            )

    oneway = jsonable.get("oneway", False)
    if oneway:
        if not _types.is_void(returns):
            return None, Error(where, "A one-way function must return void")

        if len(exceptions) > 0:
            return None, Error(where, "A one-way function can not throw exceptions")

    return (
        _types.Function(
            name=name,
            returns=returns,
            arguments=arguments,
            exceptions=exceptions,
            oneway=oneway,
        ),
        None,
    )


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def load_from_text(
    text: str,
) -> Tuple[Optional[_types.Schema], Optional[List[Error]]]:
    """Parse the JSON ``text`` and translate it into a schema."""
    try:
        jsonable = json.loads(text)
    except json.JSONDecodeError as exception:
        return None, [Error(None, f"Failed to parse the JSON: {exception}")]

    error = _check_keys(
        jsonable,
        ["name"],
        [
            "xsd_namespace",
            "typedefs",
            "enums",
            "constants",
            "structs",
            "services",
        ],
        "schema",
    )
    if error is None:
        error = _check_identifier(jsonable["name"], "schema")

    xsd_namespace = None  # type: Optional[str]
    if error is None:
        xsd_namespace = jsonable.get("xsd_namespace", None)
        if xsd_namespace is not None and not isinstance(xsd_namespace, str):
            error = Error("schema", "Expected the xsd_namespace to be a string")

    if error is not None:
        return None, [error]

    shells, shell_errors = _create_shells(jsonable)
    if shell_errors is not None:
        return None, shell_errors

    assert shells is not None

    errors = []  # type: List[Error]

    # region Typedefs

    typedefs = []  # type: List[_types.Typedef]
    for typedef_jsonable in jsonable.get("typedefs", []):
        typedef = shells[typedef_jsonable["name"]]
        assert isinstance(typedef, _types.Typedef)

        where = f"typedef {typedef.name!r}"
        error = _check_keys(typedef_jsonable, ["name", "type"], [], where)
        if error is not None:
            errors.append(error)
            continue

        a_type, error = _parse_type(typedef_jsonable["type"], shells, where)
        if error is not None:
            errors.append(error)
            continue

        assert a_type is not None

        # pylint: disable=protected-access
        typedef._set_type(a_type)
        typedefs.append(typedef)

    if len(errors) > 0:
        return None, errors

    for typedef in typedefs:
        if _find_typedef_cycle(typedef):
            errors.append(
                Error(
                    f"typedef {typedef.name!r}",
                    "The typedef refers to itself in a cycle",
                )
            )

    if len(errors) > 0:
        return None, errors

    # endregion

    enumerations = []  # type: List[_types.Enumeration]
    for enum_jsonable in jsonable.get("enums", []):
        enumeration = shells[enum_jsonable["name"]]
        assert isinstance(enumeration, _types.Enumeration)
        enumerations.append(enumeration)

    # region Structs

    structs = []  # type: List[_types.Struct]
    for struct_jsonable in jsonable.get("structs", []):
        struct = shells[struct_jsonable["name"]]
        assert isinstance(struct, _types.Struct)

        where = f"{'exception' if struct.is_exception else 'struct'} {struct.name!r}"

        fields = []  # type: List[_types.Field]
        fields_jsonable = struct_jsonable.get("fields", [])
        if not isinstance(fields_jsonable, list):
            errors.append(Error(where, "Expected the fields to be an array"))
            continue

        field_errors = []  # type: List[Error]
        for field_jsonable in fields_jsonable:
            field, error = _parse_field(field_jsonable, shells, where)
            if error is not None:
                field_errors.append(error)
                continue

            assert field is not None
            fields.append(field)

        if len(field_errors) == 0:
            field_errors.extend(_check_fields_unique(fields, where))

        if len(field_errors) > 0:
            errors.extend(field_errors)
            continue

        # pylint: disable=protected-access
        struct._set_fields(fields)
        structs.append(struct)

    # endregion

    # region Constants

    constants = []  # type: List[_types.Constant]
    constants_jsonable, error = _parse_declaration_list(jsonable, "constants")
    if error is not None:
        errors.append(error)

    for constant_jsonable in constants_jsonable:
        where = "constants"
        error = _check_keys(constant_jsonable, ["name", "type", "value"], [], where)
        if error is None:
            where = f"constant {constant_jsonable['name']!r}"
            error = _check_identifier(constant_jsonable["name"], where)

        if error is None and constant_jsonable["name"] in shells:
            error = Error(where, "The name is not unique")

        if error is not None:
            errors.append(error)
            continue

        a_type, error = _parse_type(constant_jsonable["type"], shells, where)
        if error is not None:
            errors.append(error)
            continue

        value, error = _parse_value(constant_jsonable["value"], where)
        if error is not None:
            errors.append(error)
            continue

        assert a_type is not None
        assert value is not None

        constant = _types.Constant(
            name=Identifier(constant_jsonable["name"]), a_type=a_type, value=value
        )
        shells[constant.name] = constant
        constants.append(constant)

    # endregion

    if len(errors) > 0:
        return None, errors

    # region Services

    services = []  # type: List[_types.Service]
    for service_jsonable in jsonable.get("services", []):
        service = shells[service_jsonable["name"]]
        assert isinstance(service, _types.Service)

        where = f"service {service.name!r}"
        error = _check_keys(
            service_jsonable, ["name"], ["extends", "functions"], where
        )
        if error is not None:
            errors.append(error)
            continue

        parent = None  # type: Optional[_types.Service]
        if "extends" in service_jsonable:
            declaration = shells.get(service_jsonable["extends"], None)
            if not isinstance(declaration, _types.Service):
                errors.append(
                    Error(
                        where,
                        f"The extended service is not defined: "
                        f"{service_jsonable['extends']!r}",
                    )
                )
                continue

            if declaration is service:
                errors.append(Error(where, "The service can not extend itself"))
                continue

            parent = declaration

        functions = []  # type: List[_types.Function]
        function_errors = []  # type: List[Error]
        for function_jsonable in service_jsonable.get("functions", []):
            function, error = _parse_function(function_jsonable, shells, where)
            if error is not None:
                function_errors.append(error)
                continue

            assert function is not None
            functions.append(function)

        if len(set(function.name for function in functions)) != len(functions):
            function_errors.append(Error(where, "The function names are not unique"))

        if len(function_errors) > 0:
            errors.extend(function_errors)
            continue

        # pylint: disable=protected-access
        service._set_functions_and_parent(functions=functions, parent=parent)
        services.append(service)

    if len(errors) > 0:
        return None, errors

    _, hierarchy_errors = _hierarchy.map_services_to_ontology(services)
    if hierarchy_errors is not None:
        return None, hierarchy_errors

    # endregion

    schema = _types.Schema(
        name=Identifier(jsonable["name"]),
        typedefs=typedefs,
        enumerations=enumerations,
        constants=constants,
        structs=structs,
        services=services,
        xsd_namespace=xsd_namespace,
    )

    return schema, None


@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def load(
    path: pathlib.Path,
) -> Tuple[Optional[_types.Schema], Optional[List[Error]]]:
    """Read the schema document from ``path`` and translate it into a schema."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exception:
        return None, [Error(None, f"Failed to read the schema from {path}: {exception}")]

    return load_from_text(text)
