# pylint: disable=missing-docstring

import json
import pathlib
import tempfile
import unittest
from typing import Any, Mapping

from idl_codegen import model
from idl_codegen.common import Identifier

import tests.common


def load_errors(jsonable: Mapping[str, Any]) -> str:
    """Load the ``jsonable`` expecting it to fail and render the leaf errors."""
    schema, errors = model.load_from_text(json.dumps(jsonable))
    assert schema is None, "Expected the loading to fail"
    assert errors is not None

    return tests.common.most_underlying_messages(errors)


class Test_valid(unittest.TestCase):
    def test_tutorial(self) -> None:
        schema = tests.common.must_load(
            {
                "name": "Tutorial",
                "xsd_namespace": "http://example.com/tutorial",
                "typedefs": [{"name": "MyInteger", "type": "i32"}],
                "enums": [
                    {
                        "name": "Operation",
                        "literals": [
                            {"name": "ADD", "value": 1},
                            {"name": "SUBTRACT"},
                        ],
                    }
                ],
                "constants": [
                    {"name": "INT32CONSTANT", "type": "i32", "value": {"int": 9853}},
                    {
                        "name": "MAPCONSTANT",
                        "type": {"map": {"key": "string", "value": "string"}},
                        "value": {
                            "map": [
                                [{"string": "hello"}, {"string": "world"}],
                            ]
                        },
                    },
                ],
                "structs": [
                    {
                        "name": "Work",
                        "fields": [
                            {
                                "id": 1,
                                "name": "num1",
                                "type": "i32",
                                "default": {"int": 0},
                            },
                            {"id": 2, "name": "num2", "type": "i32"},
                            {"id": 3, "name": "op", "type": "Operation"},
                            {"id": 4, "name": "comment", "type": "string"},
                        ],
                    },
                    {
                        "name": "InvalidOperation",
                        "exception": True,
                        "fields": [
                            {"id": 1, "name": "whatOp", "type": "i32"},
                            {"id": 2, "name": "why", "type": "string"},
                        ],
                    },
                ],
                "services": [
                    {
                        "name": "SharedService",
                        "functions": [{"name": "ping", "returns": "void"}],
                    },
                    {
                        "name": "Calculator",
                        "extends": "SharedService",
                        "functions": [
                            {
                                "name": "calculate",
                                "returns": "i32",
                                "arguments": [
                                    {"name": "logid", "type": "i32"},
                                    {"name": "w", "type": "Work"},
                                ],
                                "exceptions": [
                                    {"name": "ouch", "type": "InvalidOperation"}
                                ],
                            },
                            {"name": "zip", "returns": "void", "oneway": True},
                        ],
                    },
                ],
            }
        )

        self.assertEqual("Tutorial", schema.name)
        self.assertEqual("http://example.com/tutorial", schema.xsd_namespace)

        self.assertListEqual(
            [
                "MyInteger",
                "Operation",
                "INT32CONSTANT",
                "MAPCONSTANT",
                "Work",
                "InvalidOperation",
                "SharedService",
                "Calculator",
            ],
            [declaration.name for declaration in schema.declarations],
        )

        invalid_operation = schema.must_find_struct(Identifier("InvalidOperation"))
        self.assertTrue(invalid_operation.is_exception)

        calculator = schema.must_find_service(Identifier("Calculator"))
        self.assertIs(
            schema.must_find_service(Identifier("SharedService")), calculator.parent
        )

        calculate = calculator.functions_by_name[Identifier("calculate")]
        self.assertListEqual(
            [1, 2], [argument.field_id for argument in calculate.arguments]
        )
        self.assertListEqual(
            [1], [exception.field_id for exception in calculate.exceptions]
        )
        self.assertIsInstance(
            model.resolve(calculate.exceptions[0].a_type), model.ExceptionType
        )

        self.assertTrue(calculator.functions_by_name[Identifier("zip")].oneway)

    def test_constant_values(self) -> None:
        schema = tests.common.must_load(
            {
                "name": "Values",
                "constants": [
                    {"name": "HALF", "type": "double", "value": {"double": 0.5}},
                    {"name": "WHOLE", "type": "double", "value": {"double": 1}},
                    {
                        "name": "PRIMES",
                        "type": {"set": "i32"},
                        "value": {"set": [{"int": 2}, {"int": 3}]},
                    },
                ],
            }
        )

        half, whole, primes = schema.constants

        assert isinstance(half.value, model.ConstantDouble)
        self.assertEqual(0.5, half.value.value)

        assert isinstance(whole.value, model.ConstantDouble)
        self.assertIsInstance(whole.value.value, float)

        assert isinstance(primes.value, model.ConstantSet)
        self.assertEqual(2, len(primes.value.items))

    def test_string_enum_and_xsd_metadata(self) -> None:
        schema = tests.common.must_load(
            {
                "name": "Document",
                "structs": [
                    {
                        "name": "Note",
                        "xsd_all": True,
                        "fields": [
                            {
                                "id": 1,
                                "name": "mood",
                                "type": {"string_enum": ["happy", "sad"]},
                                "xsd_optional": True,
                                "xsd_nillable": True,
                                "xsd_attrs": [{"name": "lang", "type": "string"}],
                            }
                        ],
                    }
                ],
            }
        )

        note = schema.must_find_struct(Identifier("Note"))
        self.assertTrue(note.xsd_all)

        mood = note.fields[0]
        assert isinstance(mood.a_type, model.PrimitiveType)
        self.assertListEqual(["happy", "sad"], list(mood.a_type.string_enum_values or []))
        self.assertTrue(mood.xsd_optional)
        self.assertTrue(mood.xsd_nillable)

        assert mood.xsd_attrs is not None
        self.assertListEqual(["lang"], [attr.name for attr in mood.xsd_attrs])

    def test_load_from_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            pth = pathlib.Path(tmp_dir) / "schema.json"
            pth.write_text(json.dumps({"name": "Empty"}), encoding="utf-8")

            schema, errors = model.load(pth)

        self.assertIsNone(errors)
        assert schema is not None
        self.assertEqual("Empty", schema.name)
        self.assertEqual(0, len(schema.declarations))


class Test_invalid(unittest.TestCase):
    def test_invalid_json(self) -> None:
        schema, errors = model.load_from_text("{")
        self.assertIsNone(schema)
        assert errors is not None
        self.assertIn("Failed to parse the JSON", errors[0].message)

    def test_unexpected_property(self) -> None:
        self.assertEqual(
            "Unexpected property: 'something'",
            load_errors({"name": "Oops", "something": []}),
        )

    def test_undefined_type(self) -> None:
        self.assertEqual(
            "The type is not defined: 'Missing'",
            load_errors(
                {
                    "name": "Oops",
                    "structs": [
                        {
                            "name": "Something",
                            "fields": [{"id": 1, "name": "x", "type": "Missing"}],
                        }
                    ],
                }
            ),
        )

    def test_duplicate_names(self) -> None:
        self.assertEqual(
            "The name is not unique: 'Something'",
            load_errors(
                {
                    "name": "Oops",
                    "enums": [{"name": "Something", "literals": []}],
                    "structs": [{"name": "Something"}],
                }
            ),
        )

    def test_duplicate_field_ids(self) -> None:
        self.assertEqual(
            "The field ID 1 is not unique",
            load_errors(
                {
                    "name": "Oops",
                    "structs": [
                        {
                            "name": "Something",
                            "fields": [
                                {"id": 1, "name": "x", "type": "i32"},
                                {"id": 1, "name": "y", "type": "i32"},
                            ],
                        }
                    ],
                }
            ),
        )

    def test_bool_is_not_an_integer(self) -> None:
        self.assertEqual(
            "Expected an integer, but got: True",
            load_errors(
                {
                    "name": "Oops",
                    "constants": [
                        {"name": "FLAG", "type": "bool", "value": {"int": True}}
                    ],
                }
            ),
        )

    def test_typedef_cycle(self) -> None:
        self.assertIn(
            "The typedef refers to itself in a cycle",
            load_errors(
                {
                    "name": "Oops",
                    "typedefs": [
                        {"name": "A", "type": {"list": "B"}},
                        {"name": "B", "type": "A"},
                    ],
                }
            ),
        )

    def test_oneway_must_return_void(self) -> None:
        self.assertEqual(
            "A one-way function must return void",
            load_errors(
                {
                    "name": "Oops",
                    "services": [
                        {
                            "name": "Something",
                            "functions": [
                                {"name": "fire", "returns": "i32", "oneway": True}
                            ],
                        }
                    ],
                }
            ),
        )

    def test_thrown_must_be_exception(self) -> None:
        self.assertIn(
            "Expected the thrown 'problem' to be an exception",
            load_errors(
                {
                    "name": "Oops",
                    "structs": [{"name": "Plain"}],
                    "services": [
                        {
                            "name": "Something",
                            "functions": [
                                {
                                    "name": "do",
                                    "returns": "void",
                                    "exceptions": [
                                        {"name": "problem", "type": "Plain"}
                                    ],
                                }
                            ],
                        }
                    ],
                }
            ),
        )

    def test_self_extension(self) -> None:
        self.assertEqual(
            "The service can not extend itself",
            load_errors(
                {
                    "name": "Oops",
                    "services": [{"name": "Something", "extends": "Something"}],
                }
            ),
        )

    def test_inheritance_cycle(self) -> None:
        self.assertIn(
            "Expected no cycles in the inheritance",
            load_errors(
                {
                    "name": "Oops",
                    "services": [
                        {"name": "A", "extends": "B"},
                        {"name": "B", "extends": "A"},
                    ],
                }
            ),
        )

    def test_function_redefined_in_descendant(self) -> None:
        self.assertEqual(
            "The function has already been defined in the ancestor "
            "service Parent: ping",
            load_errors(
                {
                    "name": "Oops",
                    "services": [
                        {
                            "name": "Parent",
                            "functions": [{"name": "ping", "returns": "void"}],
                        },
                        {
                            "name": "Child",
                            "extends": "Parent",
                            "functions": [{"name": "ping", "returns": "void"}],
                        },
                    ],
                }
            ),
        )


if __name__ == "__main__":
    unittest.main()
