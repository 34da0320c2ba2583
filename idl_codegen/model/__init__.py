"""Provide the immutable model of a parsed and fully-typed IDL schema."""

from idl_codegen.model import _types, _hierarchy, _load

BaseKind = _types.BaseKind
STR_TO_BASE_KIND = _types.STR_TO_BASE_KIND
Type = _types.Type
PrimitiveType = _types.PrimitiveType
EnumType = _types.EnumType
TypedefType = _types.TypedefType
StructType = _types.StructType
ExceptionType = _types.ExceptionType
ListType = _types.ListType
SetType = _types.SetType
MapType = _types.MapType
TypeUnion = _types.TypeUnion
ConcreteTypeUnion = _types.ConcreteTypeUnion
ConcreteTypeUnionAsTuple = _types.ConcreteTypeUnionAsTuple
ContainerTypeUnion = _types.ContainerTypeUnion
ConstantValue = _types.ConstantValue
ConstantInteger = _types.ConstantInteger
ConstantDouble = _types.ConstantDouble
ConstantString = _types.ConstantString
ConstantList = _types.ConstantList
ConstantSet = _types.ConstantSet
ConstantMap = _types.ConstantMap
ConstantStruct = _types.ConstantStruct
ConstantValueUnion = _types.ConstantValueUnion
Field = _types.Field
Struct = _types.Struct
EnumerationLiteral = _types.EnumerationLiteral
Enumeration = _types.Enumeration
Typedef = _types.Typedef
Constant = _types.Constant
Function = _types.Function
Service = _types.Service
DeclarationUnion = _types.DeclarationUnion
Schema = _types.Schema
resolve = _types.resolve
is_void = _types.is_void
resolve_enumeration_values = _types.resolve_enumeration_values

ServiceOntology = _hierarchy.ServiceOntology
map_services_to_ontology = _hierarchy.map_services_to_ontology

load = _load.load
load_from_text = _load.load_from_text
