# pylint: disable=missing-docstring

import unittest
from typing import Any, List, Optional

from idl_codegen import model
from idl_codegen.common import Identifier
from idl_codegen.python import service as python_service

import tests.common
from tests.runtime import (
    Loopback,
    MemoryProtocol,
    TApplicationException,
    TMessageType,
    TType,
)

SCHEMA_JSONABLE = {
    "name": "Tutorial",
    "enums": [
        {
            "name": "Operation",
            "literals": [
                {"name": "ADD", "value": 1},
                {"name": "SUBTRACT"},
                {"name": "MULTIPLY"},
                {"name": "DIVIDE"},
            ],
        }
    ],
    "structs": [
        {
            "name": "Work",
            "fields": [
                {"id": 1, "name": "num1", "type": "i32", "default": {"int": 0}},
                {"id": 2, "name": "num2", "type": "i32"},
                {"id": 3, "name": "op", "type": "Operation"},
                {"id": 4, "name": "comment", "type": "string"},
            ],
        },
        {
            "name": "InvalidOperation",
            "exception": True,
            "fields": [
                {"id": 1, "name": "what_op", "type": "i32"},
                {"id": 2, "name": "why", "type": "string"},
            ],
        },
        {
            "name": "SharedStruct",
            "fields": [
                {"id": 1, "name": "key", "type": "i32"},
                {"id": 2, "name": "value", "type": "string"},
            ],
        },
    ],
    "services": [
        {
            "name": "Calculator",
            "extends": "SharedService",
            "functions": [
                {"name": "ping", "returns": "void"},
                {
                    "name": "add",
                    "returns": "i32",
                    "arguments": [
                        {"name": "num1", "type": "i32"},
                        {"name": "num2", "type": "i32"},
                    ],
                },
                {
                    "name": "calculate",
                    "returns": "i32",
                    "arguments": [
                        {"name": "logid", "type": "i32"},
                        {"name": "w", "type": "Work"},
                    ],
                    "exceptions": [{"name": "ouch", "type": "InvalidOperation"}],
                },
                {"name": "zip", "returns": "void", "oneway": True},
                {
                    "name": "lookup",
                    "returns": "string",
                    "arguments": [{"name": "key", "type": "i32"}],
                },
            ],
        },
        {
            "name": "SharedService",
            "functions": [
                {
                    "name": "get_struct",
                    "returns": "SharedStruct",
                    "arguments": [{"name": "key", "type": "i32"}],
                }
            ],
        },
    ],
}


class Test_helper_structs(unittest.TestCase):
    def setUp(self) -> None:
        self.schema = tests.common.must_load(SCHEMA_JSONABLE)
        self.calculator = self.schema.must_find_service(Identifier("Calculator"))

    def test_args_are_numbered_by_position(self) -> None:
        struct = python_service.args_struct(
            self.calculator.functions_by_name[Identifier("calculate")]
        )

        self.assertEqual("calculate_args", struct.name)
        self.assertListEqual(
            [("logid", 1), ("w", 2)],
            [(field.name, field.field_id) for field in struct.fields],
        )

    def test_result_of_two_way_function(self) -> None:
        struct = python_service.result_struct(
            self.calculator.functions_by_name[Identifier("calculate")]
        )

        self.assertEqual("calculate_result", struct.name)
        self.assertListEqual(
            [("success", 0), ("ouch", 1)],
            [(field.name, field.field_id) for field in struct.fields],
        )

    def test_result_of_void_function(self) -> None:
        struct = python_service.result_struct(
            self.calculator.functions_by_name[Identifier("ping")]
        )

        self.assertListEqual([], list(struct.fields))


class Test_generate(unittest.TestCase):
    def test_module_of_child_imports_the_parent(self) -> None:
        schema = tests.common.must_load(SCHEMA_JSONABLE)
        ontology, errors = model.map_services_to_ontology(schema.services)
        assert errors is None
        assert ontology is not None

        code, error = python_service.generate(
            schema.must_find_service(Identifier("Calculator")),
            ontology,
            tests.common.RUNTIME_MODULE,
        )
        self.assertIsNone(error)
        assert code is not None

        self.assertIn("from . import shared_service\n", code)
        self.assertIn("class Client(shared_service.Client, Iface):", code)
        self.assertIn("class Processor(shared_service.Processor):", code)
        self.assertIn(
            "'get_struct': shared_service.Processor.process_get_struct,", code
        )
        self.assertTrue(code.endswith("\n"))


def make_handler(calculator: Any, ttypes: Any) -> Any:
    """Create a handler which records the calls."""

    class Handler(calculator.Iface):  # type: ignore
        def __init__(self) -> None:
            self.calls = []  # type: List[str]

        def get_struct(self, key: int) -> Any:
            self.calls.append("get_struct")
            return ttypes.SharedStruct(key=key, value=f"value of {key}")

        def ping(self) -> None:
            self.calls.append("ping")

        def add(self, num1: int, num2: int) -> int:
            self.calls.append("add")
            return num1 + num2

        def calculate(self, logid: int, w: Any) -> int:
            self.calls.append("calculate")

            if w.op == ttypes.Operation.DIVIDE:
                if w.num2 == 0:
                    raise ttypes.InvalidOperation(
                        what_op=w.op, why="Cannot divide by 0"
                    )

                return w.num1 // w.num2

            if w.op == ttypes.Operation.ADD:
                return w.num1 + w.num2

            raise ValueError(f"Unexpected operation in the log {logid}: {w.op}")

        def zip(self) -> None:
            self.calls.append("zip")

        def lookup(self, key: int) -> Optional[str]:
            self.calls.append(f"lookup {key}")
            return None

    return Handler()


class Test_calls(unittest.TestCase):
    generated: tests.common.GeneratedPackage

    @classmethod
    def setUpClass(cls) -> None:
        cls.generated = tests.common.import_generated(
            tests.common.must_load(SCHEMA_JSONABLE)
        )

    def setUp(self) -> None:
        self.calculator = self.generated.service("Calculator")
        self.ttypes = self.generated.ttypes

        self.handler = make_handler(self.calculator, self.ttypes)
        self.loopback = Loopback(self.calculator.Processor(self.handler))
        self.client = self.calculator.Client(
            self.loopback.client_iprot, self.loopback.client_oprot
        )

    def test_two_way_call(self) -> None:
        self.assertEqual(5, self.client.add(2, 3))
        self.assertListEqual(["add"], self.handler.calls)
        self.assertListEqual([True], self.loopback.processed)
        self.assertEqual(0, len(self.loopback.to_client))

    def test_void_call(self) -> None:
        self.assertIsNone(self.client.ping())
        self.assertListEqual(["ping"], self.handler.calls)

    def test_sequence_ids_increase(self) -> None:
        self.client.ping()
        self.client.ping()

        # pylint: disable=protected-access
        self.assertEqual(2, self.client._seqid)

    def test_struct_argument(self) -> None:
        work = self.ttypes.Work(num1=6, num2=3, op=self.ttypes.Operation.DIVIDE)
        self.assertEqual(2, self.client.calculate(1, work))

    def test_declared_exception_is_raised_on_the_client(self) -> None:
        work = self.ttypes.Work(num1=1, num2=0, op=self.ttypes.Operation.DIVIDE)

        with self.assertRaises(self.ttypes.InvalidOperation) as context:
            self.client.calculate(1, work)

        self.assertEqual("Cannot divide by 0", context.exception.why)
        self.assertEqual(self.ttypes.Operation.DIVIDE, context.exception.what_op)

    def test_undeclared_exception_propagates_from_the_processor(self) -> None:
        work = self.ttypes.Work(num1=1, num2=2, op=self.ttypes.Operation.MULTIPLY)

        with self.assertRaises(ValueError):
            self.client.calculate(7, work)

    def test_one_way_call_has_no_reply(self) -> None:
        self.assertIsNone(self.client.zip())

        self.assertListEqual(["zip"], self.handler.calls)
        self.assertListEqual([True], self.loopback.processed)
        self.assertEqual(0, len(self.loopback.to_client))
        self.assertEqual(0, len(self.loopback.to_server))

    def test_one_way_client_has_no_receive(self) -> None:
        self.assertFalse(hasattr(self.calculator.Client, "recv_zip"))
        self.assertTrue(hasattr(self.calculator.Client, "recv_ping"))

    def test_inherited_function(self) -> None:
        shared = self.ttypes.SharedStruct(key=1, value="value of 1")
        self.assertEqual(shared, self.client.get_struct(1))
        self.assertListEqual(["get_struct"], self.handler.calls)

    def test_parent_client_and_processor(self) -> None:
        shared_service = self.generated.service("SharedService")

        self.assertTrue(issubclass(self.calculator.Client, shared_service.Client))
        self.assertTrue(
            issubclass(self.calculator.Processor, shared_service.Processor)
        )

        loopback = Loopback(shared_service.Processor(self.handler))
        client = shared_service.Client(loopback.client_iprot, loopback.client_oprot)

        self.assertEqual("value of 3", client.get_struct(3).value)

    def test_missing_result(self) -> None:
        with self.assertRaises(TApplicationException) as context:
            self.client.lookup(1)

        self.assertEqual(TApplicationException.MISSING_RESULT, context.exception.type)
        self.assertEqual("lookup failed: unknown result", context.exception.message)

    def test_interface_is_abstract(self) -> None:
        with self.assertRaises(TypeError):
            self.calculator.Iface()


class Test_processor(unittest.TestCase):
    generated: tests.common.GeneratedPackage

    @classmethod
    def setUpClass(cls) -> None:
        cls.generated = tests.common.import_generated(
            tests.common.must_load(SCHEMA_JSONABLE)
        )

    def test_unknown_function(self) -> None:
        calculator = self.generated.service("Calculator")
        processor = calculator.Processor(
            make_handler(calculator, self.generated.ttypes)
        )

        iprot = MemoryProtocol()
        iprot.writeMessageBegin("divide_by_zero", TMessageType.CALL, 42)
        iprot.writeStructBegin("divide_by_zero_args")
        iprot.writeFieldBegin("key", TType.I32, 1)
        iprot.writeI32(1)
        iprot.writeFieldEnd()
        iprot.writeFieldStop()
        iprot.writeStructEnd()
        iprot.writeMessageEnd()

        oprot = MemoryProtocol()

        self.assertFalse(processor.process(iprot, oprot))
        self.assertEqual(0, len(iprot.tokens), "Expected the call to be consumed")
        self.assertEqual(1, oprot.trans.flush_count)

        self.assertEqual(
            ("message_begin", ("divide_by_zero", TMessageType.EXCEPTION, 42)),
            oprot.tokens.popleft(),
        )

        exception = TApplicationException()
        exception.read(oprot)
        oprot.readMessageEnd()

        self.assertEqual(TApplicationException.UNKNOWN_METHOD, exception.type)
        self.assertEqual("Unknown function divide_by_zero", exception.message)

    def test_reply_carries_the_sequence_id(self) -> None:
        calculator = self.generated.service("Calculator")
        ttypes = self.generated.ttypes
        processor = calculator.Processor(make_handler(calculator, ttypes))

        iprot = MemoryProtocol()
        iprot.writeMessageBegin("add", TMessageType.CALL, 7)
        calculator.add_args(num1=1, num2=2).write(iprot)
        iprot.writeMessageEnd()

        oprot = MemoryProtocol()
        self.assertTrue(processor.process(iprot, oprot))

        self.assertEqual(
            ("message_begin", ("add", TMessageType.REPLY, 7)), oprot.tokens.popleft()
        )

        result = calculator.add_result()
        result.read(oprot)
        oprot.readMessageEnd()

        self.assertEqual(3, result.success)


class Test_client_receive(unittest.TestCase):
    generated: tests.common.GeneratedPackage

    @classmethod
    def setUpClass(cls) -> None:
        cls.generated = tests.common.import_generated(
            tests.common.must_load(SCHEMA_JSONABLE)
        )

    def test_out_of_sequence_response(self) -> None:
        calculator = self.generated.service("Calculator")

        iprot = MemoryProtocol()
        iprot.writeMessageBegin("add", TMessageType.REPLY, 99)
        calculator.add_result(success=3).write(iprot)
        iprot.writeMessageEnd()

        client = calculator.Client(iprot, MemoryProtocol())

        with self.assertRaises(TApplicationException) as context:
            client.add(1, 2)

        self.assertEqual(
            TApplicationException.BAD_SEQUENCE_ID, context.exception.type
        )
        self.assertEqual(
            "add failed: out of sequence response", context.exception.message
        )

    def test_exception_reply(self) -> None:
        calculator = self.generated.service("Calculator")

        iprot = MemoryProtocol()
        iprot.writeMessageBegin("add", TMessageType.EXCEPTION, 1)
        TApplicationException(
            TApplicationException.INVALID_MESSAGE_TYPE, "Something went wrong"
        ).write(iprot)
        iprot.writeMessageEnd()

        client = calculator.Client(iprot, MemoryProtocol())

        with self.assertRaises(TApplicationException) as context:
            client.add(1, 2)

        self.assertEqual(
            TApplicationException.INVALID_MESSAGE_TYPE, context.exception.type
        )
        self.assertEqual("Something went wrong", context.exception.message)
        self.assertEqual(0, len(iprot.tokens))

    def test_call_is_written_to_the_output(self) -> None:
        calculator = self.generated.service("Calculator")

        oprot = MemoryProtocol()
        calculator.Client(MemoryProtocol(), oprot).send_add(1, 2)

        self.assertListEqual(
            [
                ("message_begin", ("add", TMessageType.CALL, 1)),
                ("struct_begin", "add_args"),
                ("field_begin", ("num1", TType.I32, 1)),
                ("i32", 1),
                ("field_end", None),
                ("field_begin", ("num2", TType.I32, 2)),
                ("i32", 2),
                ("field_end", None),
                ("field_begin", (None, TType.STOP, 0)),
                ("struct_end", None),
                ("message_end", None),
            ],
            oprot.values(),
        )
        self.assertEqual(1, oprot.trans.flush_count)

FAMILY_JSONABLE = {
    "name": "Family",
    "services": [
        {
            "name": "Leaf",
            "extends": "Mid",
            "functions": [
                {
                    "name": "shout",
                    "returns": "string",
                    "arguments": [{"name": "text", "type": "string"}],
                }
            ],
        },
        {
            "name": "Mid",
            "extends": "Root",
            "functions": [{"name": "count", "returns": "i32"}],
        },
        {
            "name": "Root",
            "functions": [
                {
                    "name": "greet",
                    "returns": "string",
                    "arguments": [
                        {"name": "name", "type": "string"},
                        {
                            "name": "titles",
                            "type": {"list": "string"},
                            "default": {"list": [{"string": "dear"}]},
                        },
                    ],
                }
            ],
        },
    ],
}


class Test_grandparent_dispatch(unittest.TestCase):
    generated: tests.common.GeneratedPackage

    @classmethod
    def setUpClass(cls) -> None:
        cls.generated = tests.common.import_generated(
            tests.common.must_load(FAMILY_JSONABLE)
        )

    def setUp(self) -> None:
        leaf = self.generated.service("Leaf")

        class Handler(leaf.Iface):  # type: ignore
            def __init__(self) -> None:
                self.calls = []  # type: List[str]

            def greet(self, name: str, titles: List[str]) -> str:
                self.calls.append("greet")
                return " ".join(titles + [name])

            def count(self) -> int:
                self.calls.append("count")
                return 3

            def shout(self, text: str) -> str:
                self.calls.append("shout")
                return text.upper()

        self.handler = Handler()
        self.loopback = Loopback(leaf.Processor(self.handler))
        self.client = leaf.Client(
            self.loopback.client_iprot, self.loopback.client_oprot
        )

    def test_function_of_the_grandparent(self) -> None:
        self.assertEqual("dear Alice", self.client.greet("Alice", ["dear"]))
        self.assertListEqual(["greet"], self.handler.calls)
        self.assertListEqual([True], self.loopback.processed)

    def test_every_level_of_the_chain(self) -> None:
        self.assertEqual("HEY", self.client.shout("hey"))
        self.assertEqual(3, self.client.count())
        self.assertEqual("Bob", self.client.greet("Bob", []))

        self.assertListEqual(["shout", "count", "greet"], self.handler.calls)

    def test_processor_chain(self) -> None:
        root = self.generated.service("Root")
        mid = self.generated.service("Mid")
        leaf = self.generated.service("Leaf")

        self.assertTrue(issubclass(leaf.Processor, mid.Processor))
        self.assertTrue(issubclass(mid.Processor, root.Processor))

        # pylint: disable=protected-access
        self.assertIs(
            root.Processor.process_greet, leaf.Processor._PROCESS_MAP["greet"]
        )

    def test_constructed_default_of_an_argument(self) -> None:
        root = self.generated.service("Root")

        self.assertListEqual(["dear"], root.greet_args().titles)
        self.assertIsNone(root.greet_args(titles=None).titles)


if __name__ == "__main__":
    unittest.main()
