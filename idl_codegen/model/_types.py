"""Provide types of the schema model shared by all the emitters."""
import abc
import enum
from typing import (
    Sequence,
    Optional,
    Union,
    Mapping,
    Final,
    Tuple,
    List,
    get_args,
)

from icontract import require, ensure, DBC

from idl_codegen.common import (
    Identifier,
    assert_union_of_descendants_exhaustive,
)


class BaseKind(enum.Enum):
    """List the base types of the schema."""

    VOID = "void"
    BOOL = "bool"
    BYTE = "byte"
    I16 = "i16"
    I32 = "i32"
    I64 = "i64"
    DOUBLE = "double"
    STRING = "string"


STR_TO_BASE_KIND = {
    literal.value: literal for literal in BaseKind
}  # type: Mapping[str, BaseKind]


class Type(DBC):
    """Represent a general type of the schema."""

    @abc.abstractmethod
    def __str__(self) -> str:
        # Signal that this class is a purely abstract one
        raise NotImplementedError()


class PrimitiveType(Type):
    """Represent a base type such as ``i32`` or ``string``."""

    #: Kind of the base type
    kind: Final[BaseKind]

    #: If set, the allowed values of a string enumeration
    string_enum_values: Final[Optional[Sequence[str]]]

    @require(
        lambda kind, string_enum_values: string_enum_values is None
        or kind is BaseKind.STRING,
        "Only strings can be enumerated",
    )
    def __init__(
        self, kind: BaseKind, string_enum_values: Optional[Sequence[str]] = None
    ) -> None:
        """Initialize with the given values."""
        self.kind = kind
        self.string_enum_values = string_enum_values

    def __str__(self) -> str:
        return self.kind.value


class EnumType(Type):
    """Refer to an enumeration."""

    def __init__(self, enumeration: "Enumeration") -> None:
        """Initialize with the given values."""
        self.enumeration = enumeration

    def __str__(self) -> str:
        return self.enumeration.name


class TypedefType(Type):
    """Refer to a typedef, which in turn refers to the underlying type."""

    def __init__(self, typedef: "Typedef") -> None:
        """Initialize with the given values."""
        self.typedef = typedef

    def __str__(self) -> str:
        return self.typedef.name


class StructType(Type):
    """Refer to a struct."""

    @require(lambda struct: not struct.is_exception)
    def __init__(self, struct: "Struct") -> None:
        """Initialize with the given values."""
        self.struct = struct

    def __str__(self) -> str:
        return self.struct.name


class ExceptionType(Type):
    """Refer to an exception, a struct which can be thrown."""

    @require(lambda struct: struct.is_exception)
    def __init__(self, struct: "Struct") -> None:
        """Initialize with the given values."""
        self.struct = struct

    def __str__(self) -> str:
        return self.struct.name


class ListType(Type):
    """Represent an ordered sequence of items."""

    def __init__(self, items: "TypeUnion") -> None:
        """Initialize with the given values."""
        self.items = items

    def __str__(self) -> str:
        return f"list<{self.items}>"


class SetType(Type):
    """Represent an unordered collection of unique items."""

    def __init__(self, items: "TypeUnion") -> None:
        """Initialize with the given values."""
        self.items = items

    def __str__(self) -> str:
        return f"set<{self.items}>"


class MapType(Type):
    """Represent a mapping of keys to values."""

    def __init__(self, keys: "TypeUnion", values: "TypeUnion") -> None:
        """Initialize with the given values."""
        self.keys = keys
        self.values = values

    def __str__(self) -> str:
        return f"map<{self.keys},{self.values}>"


TypeUnion = Union[
    PrimitiveType,
    EnumType,
    TypedefType,
    StructType,
    ExceptionType,
    ListType,
    SetType,
    MapType,
]

assert_union_of_descendants_exhaustive(union=TypeUnion, base_class=Type)

#: Types which remain after the typedefs have been resolved
ConcreteTypeUnion = Union[
    PrimitiveType,
    EnumType,
    StructType,
    ExceptionType,
    ListType,
    SetType,
    MapType,
]

ConcreteTypeUnionAsTuple = (
    PrimitiveType,
    EnumType,
    StructType,
    ExceptionType,
    ListType,
    SetType,
    MapType,
)
assert ConcreteTypeUnionAsTuple == get_args(ConcreteTypeUnion)

ContainerTypeUnion = Union[ListType, SetType, MapType]


# region Constant values


class ConstantValue(DBC):
    """Represent a literal value of a constant or a default."""

    @abc.abstractmethod
    def __repr__(self) -> str:
        """Represent the instance as a string for easier debugging."""
        raise NotImplementedError()


class ConstantInteger(ConstantValue):
    """Represent an integer literal, also used for booleans and enumerations."""

    def __init__(self, value: int) -> None:
        """Initialize with the given values."""
        self.value = value

    def __repr__(self) -> str:
        return f"ConstantInteger({self.value!r})"


class ConstantDouble(ConstantValue):
    """Represent a floating-point literal."""

    def __init__(self, value: float) -> None:
        """Initialize with the given values."""
        self.value = value

    def __repr__(self) -> str:
        return f"ConstantDouble({self.value!r})"


class ConstantString(ConstantValue):
    """Represent a string literal."""

    def __init__(self, value: str) -> None:
        """Initialize with the given values."""
        self.value = value

    def __repr__(self) -> str:
        return f"ConstantString({self.value!r})"


class ConstantList(ConstantValue):
    """Represent a list literal."""

    def __init__(self, items: Sequence["ConstantValueUnion"]) -> None:
        """Initialize with the given values."""
        self.items = items

    def __repr__(self) -> str:
        return f"ConstantList({list(self.items)!r})"


class ConstantSet(ConstantValue):
    """Represent a set literal; the items are kept in the order of the literal."""

    def __init__(self, items: Sequence["ConstantValueUnion"]) -> None:
        """Initialize with the given values."""
        self.items = items

    def __repr__(self) -> str:
        return f"ConstantSet({list(self.items)!r})"


class ConstantMap(ConstantValue):
    """Represent a map literal as ordered key-value pairs."""

    def __init__(
        self, entries: Sequence[Tuple["ConstantValueUnion", "ConstantValueUnion"]]
    ) -> None:
        """Initialize with the given values."""
        self.entries = entries

    def __repr__(self) -> str:
        return f"ConstantMap({list(self.entries)!r})"


class ConstantStruct(ConstantValue):
    """
    Represent a struct literal as ordered pairs of field names and values.

    The field names are matched against the fields of the target struct only
    when the literal is rendered.
    """

    def __init__(self, entries: Sequence[Tuple[str, "ConstantValueUnion"]]) -> None:
        """Initialize with the given values."""
        self.entries = entries

    def __repr__(self) -> str:
        return f"ConstantStruct({list(self.entries)!r})"


ConstantValueUnion = Union[
    ConstantInteger,
    ConstantDouble,
    ConstantString,
    ConstantList,
    ConstantSet,
    ConstantMap,
    ConstantStruct,
]

assert_union_of_descendants_exhaustive(
    union=ConstantValueUnion, base_class=ConstantValue
)

# endregion

# region Declarations


class Field:
    """Represent a field of a struct, an argument or a thrown exception."""

    #: Name of the field
    name: Final[Identifier]

    #: Key of the field on the wire, unique within the owning struct
    field_id: Final[int]

    #: Declared type of the field
    a_type: Final[TypeUnion]

    #: Default value, if declared
    default: Final[Optional[ConstantValueUnion]]

    #: If set, the field is optional in the XML Schema Definition
    xsd_optional: Final[bool]

    #: If set, the field is nillable in the XML Schema Definition
    xsd_nillable: Final[bool]

    #: If set, the attributes of the element in the XML Schema Definition
    xsd_attrs: Final[Optional[Sequence["Field"]]]

    @require(lambda field_id: field_id >= 0)
    def __init__(
        self,
        name: Identifier,
        field_id: int,
        a_type: TypeUnion,
        default: Optional[ConstantValueUnion] = None,
        xsd_optional: bool = False,
        xsd_nillable: bool = False,
        xsd_attrs: Optional[Sequence["Field"]] = None,
    ) -> None:
        """Initialize with the given values."""
        self.name = name
        self.field_id = field_id
        self.a_type = a_type
        self.default = default
        self.xsd_optional = xsd_optional
        self.xsd_nillable = xsd_nillable
        self.xsd_attrs = xsd_attrs

    def __repr__(self) -> str:
        return f"Field(name={self.name!r}, field_id={self.field_id!r})"


class Struct:
    """
    Represent a struct or an exception.

    The fields are set only once the forward references have been resolved.
    """

    #: Name of the struct
    name: Final[Identifier]

    #: If set, the struct can be thrown
    is_exception: Final[bool]

    #: If set, the fields are unordered in the XML Schema Definition
    xsd_all: Final[bool]

    #: Fields in order of declaration
    fields: Sequence[Field]

    #: Map field ID 🠒 field
    fields_by_id: Mapping[int, Field]

    #: Map field name 🠒 field
    fields_by_name: Mapping[Identifier, Field]

    def __init__(
        self,
        name: Identifier,
        is_exception: bool = False,
        xsd_all: bool = False,
        fields: Optional[Sequence[Field]] = None,
    ) -> None:
        """Initialize with the given values."""
        self.name = name
        self.is_exception = is_exception
        self.xsd_all = xsd_all

        self.fields = []
        self.fields_by_id = dict()
        self.fields_by_name = dict()

        if fields is not None:
            self._set_fields(fields)

    # fmt: off
    @require(
        lambda fields:
        len(set(field.field_id for field in fields)) == len(fields),
        "Unique field IDs"
    )
    @require(
        lambda fields:
        len(set(field.name for field in fields)) == len(fields),
        "Unique field names"
    )
    @ensure(lambda self: len(self.fields_by_id) == len(self.fields))
    # fmt: on
    def _set_fields(self, fields: Sequence[Field]) -> None:
        """Set the fields once all the types have been resolved."""
        self.fields = fields
        self.fields_by_id = {field.field_id: field for field in fields}
        self.fields_by_name = {field.name: field for field in fields}

    def __repr__(self) -> str:
        return f"Struct(name={self.name!r}, is_exception={self.is_exception!r})"


class EnumerationLiteral:
    """Represent a constant of an enumeration."""

    def __init__(self, name: Identifier, value: Optional[int]) -> None:
        """Initialize with the given values."""
        self.name = name
        self.value = value


class Enumeration:
    """Represent an enumeration of integer constants."""

    # fmt: off
    @require(
        lambda literals:
        len(set(literal.name for literal in literals)) == len(literals),
        "Unique literal names"
    )
    # fmt: on
    def __init__(
        self, name: Identifier, literals: Sequence[EnumerationLiteral]
    ) -> None:
        """Initialize with the given values."""
        self.name = name
        self.literals = literals


class Typedef:
    """Represent an alias of a type; the type is set after the resolution."""

    #: Name of the alias
    name: Final[Identifier]

    #: Aliased type
    a_type: TypeUnion

    def __init__(self, name: Identifier, a_type: Optional[TypeUnion] = None) -> None:
        """Initialize with the given values."""
        self.name = name

        if a_type is not None:
            self._set_type(a_type)

    def _set_type(self, a_type: TypeUnion) -> None:
        """Set the aliased type once the forward references have been resolved."""
        self.a_type = a_type

    def __repr__(self) -> str:
        return f"Typedef(name={self.name!r})"


class Constant:
    """Represent a named constant value."""

    def __init__(
        self, name: Identifier, a_type: TypeUnion, value: ConstantValueUnion
    ) -> None:
        """Initialize with the given values."""
        self.name = name
        self.a_type = a_type
        self.value = value


class Function:
    """Represent a remote call of a service."""

    #: Name of the function
    name: Final[Identifier]

    #: Type of the result; ``void`` if nothing is returned
    returns: Final[TypeUnion]

    #: Arguments in order of declaration
    arguments: Final[Sequence[Field]]

    #: Declared exceptions in order of declaration
    exceptions: Final[Sequence[Field]]

    #: If set, no reply is expected
    oneway: Final[bool]

    # fmt: off
    @require(
        lambda exceptions:
        all(isinstance(resolve(field.a_type), ExceptionType)
            for field in exceptions),
        "Only exceptions can be thrown"
    )
    # fmt: on
    def __init__(
        self,
        name: Identifier,
        returns: TypeUnion,
        arguments: Sequence[Field],
        exceptions: Sequence[Field],
        oneway: bool = False,
    ) -> None:
        """Initialize with the given values."""
        self.name = name
        self.returns = returns
        self.arguments = arguments
        self.exceptions = exceptions
        self.oneway = oneway

    def __repr__(self) -> str:
        return f"Function(name={self.name!r})"


class Service:
    """
    Represent a service as a collection of remote functions.

    A service can extend at most one parent service. The functions and the parent
    are set once the forward references have been resolved.
    """

    #: Name of the service
    name: Final[Identifier]

    #: Functions in order of declaration, without the inherited ones
    functions: Sequence[Function]

    #: Map function name 🠒 function, without the inherited ones
    functions_by_name: Mapping[Identifier, Function]

    #: Service which this service extends
    parent: Optional["Service"]

    def __init__(
        self,
        name: Identifier,
        functions: Optional[Sequence[Function]] = None,
        parent: Optional["Service"] = None,
    ) -> None:
        """Initialize with the given values."""
        self.name = name
        self.functions = []
        self.functions_by_name = dict()
        self.parent = None

        if functions is not None:
            self._set_functions_and_parent(functions=functions, parent=parent)

    # fmt: off
    @require(
        lambda functions:
        len(set(function.name for function in functions)) == len(functions),
        "Unique function names"
    )
    @require(lambda self, parent: parent is not self, "No self-inheritance")
    # fmt: on
    def _set_functions_and_parent(
        self, functions: Sequence[Function], parent: Optional["Service"]
    ) -> None:
        """Set the functions and the parent once the references have been resolved."""
        self.functions = functions
        self.functions_by_name = {function.name: function for function in functions}
        self.parent = parent

    def __repr__(self) -> str:
        return f"Service(name={self.name!r})"


DeclarationUnion = Union[Typedef, Enumeration, Struct, Service, Constant]


def _names_unique(*declaration_lists: Sequence[DeclarationUnion]) -> bool:
    """Check that no two declarations share the same name."""
    names = [
        declaration.name
        for declarations in declaration_lists
        for declaration in declarations
    ]
    return len(set(names)) == len(names)


class Schema:
    """Represent the whole schema as produced by the front-end."""

    #: Name of the schema
    name: Final[Identifier]

    #: Target namespace of the XML Schema Definition, if any
    xsd_namespace: Final[Optional[str]]

    typedefs: Final[Sequence[Typedef]]
    enumerations: Final[Sequence[Enumeration]]
    constants: Final[Sequence[Constant]]

    #: Structs and exceptions in the order of declaration
    structs: Final[Sequence[Struct]]

    services: Final[Sequence[Service]]

    #: All the declarations, grouped by their kind
    declarations: Final[Sequence[DeclarationUnion]]

    #: Map name 🠒 declaration
    _declarations_by_name: Final[Mapping[Identifier, DeclarationUnion]]

    # fmt: off
    @require(
        lambda typedefs, enumerations, constants, structs, services:
        _names_unique(typedefs, enumerations, constants, structs, services),
        "Unique names of the declarations"
    )
    # fmt: on
    def __init__(
        self,
        name: Identifier,
        typedefs: Sequence[Typedef],
        enumerations: Sequence[Enumeration],
        constants: Sequence[Constant],
        structs: Sequence[Struct],
        services: Sequence[Service],
        xsd_namespace: Optional[str] = None,
    ) -> None:
        """Initialize with the given values."""
        self.name = name
        self.typedefs = typedefs
        self.enumerations = enumerations
        self.constants = constants
        self.structs = structs
        self.services = services
        self.xsd_namespace = xsd_namespace

        declarations = []  # type: List[DeclarationUnion]
        declarations.extend(typedefs)
        declarations.extend(enumerations)
        declarations.extend(constants)
        declarations.extend(structs)
        declarations.extend(services)
        self.declarations = declarations

        self._declarations_by_name = {
            declaration.name: declaration for declaration in declarations
        }

    def find(self, name: Identifier) -> Optional[DeclarationUnion]:
        """Find the declaration with the given ``name``."""
        return self._declarations_by_name.get(name, None)

    def must_find_struct(self, name: Identifier) -> Struct:
        """Find the struct or the exception, or raise an exception."""
        declaration = self._declarations_by_name.get(name, None)
        if not isinstance(declaration, Struct):
            raise KeyError(f"The struct {name!r} has not been declared")

        return declaration

    def must_find_service(self, name: Identifier) -> Service:
        """Find the service, or raise an exception."""
        declaration = self._declarations_by_name.get(name, None)
        if not isinstance(declaration, Service):
            raise KeyError(f"The service {name!r} has not been declared")

        return declaration


# endregion

# region Resolution


def resolve(a_type: TypeUnion) -> ConcreteTypeUnion:
    """
    Strip the typedef indirection down to the concrete type.

    The typedef chains are expected to be finite, which the loader ensures.
    """
    resolved = a_type
    while isinstance(resolved, TypedefType):
        resolved = resolved.typedef.a_type

    assert not isinstance(resolved, TypedefType)
    return resolved


def is_void(a_type: TypeUnion) -> bool:
    """Check whether the ``a_type`` resolves to ``void``."""
    resolved = resolve(a_type)
    return isinstance(resolved, PrimitiveType) and resolved.kind is BaseKind.VOID


@ensure(lambda enumeration, result: len(result) == len(enumeration.literals))
def resolve_enumeration_values(enumeration: Enumeration) -> List[int]:
    """
    Compute the values of the ``enumeration`` literals in order of declaration.

    The first literal without an explicit value is 0. Every following literal
    without an explicit value is one more than its predecessor, while an explicit
    value restarts the counting.

    >>> resolve_enumeration_values(
    ...     Enumeration(
    ...         Identifier("Color"),
    ...         [
    ...             EnumerationLiteral(Identifier("RED"), None),
    ...             EnumerationLiteral(Identifier("GREEN"), 5),
    ...             EnumerationLiteral(Identifier("BLUE"), None),
    ...         ]
    ...     )
    ... )
    [0, 5, 6]
    """
    result = []  # type: List[int]

    value = -1
    for literal in enumeration.literals:
        if literal.value is not None:
            value = literal.value
        else:
            value += 1

        result.append(value)

    return result


# endregion
