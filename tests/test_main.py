# pylint: disable=missing-docstring

import io
import json
import pathlib
import tempfile
import unittest
from typing import Tuple

import idl_codegen.main

TUTORIAL_JSONABLE = {
    "name": "Tutorial",
    "xsd_namespace": "http://example.com/tutorial",
    "constants": [{"name": "INT32CONSTANT", "type": "i32", "value": {"int": 9853}}],
    "structs": [
        {
            "name": "Work",
            "fields": [
                {"id": 1, "name": "num1", "type": "i32", "default": {"int": 0}},
                {"id": 2, "name": "num2", "type": "i32"},
            ],
        }
    ],
    "services": [
        {
            "name": "Calculator",
            "functions": [
                {
                    "name": "calculate",
                    "returns": "i32",
                    "arguments": [{"name": "w", "type": "Work"}],
                }
            ],
        }
    ],
}


def run_main(
    model_path: pathlib.Path,
    target: idl_codegen.main.Target,
    output_dir: pathlib.Path,
    runtime_module: str = "tests.runtime",
) -> Tuple[int, str, str]:
    params = idl_codegen.main.Parameters(
        model_path=model_path,
        target=target,
        output_dir=output_dir,
        runtime_module=runtime_module,
    )

    stdout = io.StringIO()
    stderr = io.StringIO()

    return_code = idl_codegen.main.execute(params=params, stdout=stdout, stderr=stderr)

    return return_code, stdout.getvalue(), stderr.getvalue()


class Test_execute(unittest.TestCase):
    def setUp(self) -> None:
        # pylint: disable=consider-using-with
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp_dir.cleanup)

        self.model_path = pathlib.Path(self.tmp_dir.name) / "tutorial.json"
        self.model_path.write_text(json.dumps(TUTORIAL_JSONABLE), encoding="utf-8")

        self.output_dir = pathlib.Path(self.tmp_dir.name) / "output"

    def test_python(self) -> None:
        return_code, stdout, stderr = run_main(
            self.model_path, idl_codegen.main.Target.PYTHON, self.output_dir
        )

        self.assertEqual("", stderr)
        self.assertEqual(0, return_code)
        self.assertEqual(f"Code generated to: {self.output_dir}\n", stdout)

        self.assertListEqual(
            ["__init__.py", "calculator.py", "constants.py", "ttypes.py"],
            sorted(pth.name for pth in self.output_dir.iterdir()),
        )

        init_text = (self.output_dir / "__init__.py").read_text(encoding="utf-8")
        self.assertIn(
            "__all__ = [\n    'constants',\n    'ttypes',\n    'calculator',\n]\n",
            init_text,
        )

        ttypes_text = (self.output_dir / "ttypes.py").read_text(encoding="utf-8")
        self.assertIn("from tests.runtime import TException, TType\n", ttypes_text)

    def test_xsd(self) -> None:
        return_code, stdout, stderr = run_main(
            self.model_path, idl_codegen.main.Target.XSD, self.output_dir
        )

        self.assertEqual("", stderr)
        self.assertEqual(0, return_code)
        self.assertEqual(f"Code generated to: {self.output_dir}\n", stdout)

        schema_text = (self.output_dir / "schema.xsd").read_text(encoding="utf-8")
        self.assertIn('targetNamespace="http://example.com/tutorial"', schema_text)

    def test_missing_model(self) -> None:
        missing = pathlib.Path(self.tmp_dir.name) / "missing.json"

        return_code, stdout, stderr = run_main(
            missing, idl_codegen.main.Target.PYTHON, self.output_dir
        )

        self.assertEqual(1, return_code)
        self.assertEqual("", stdout)
        self.assertEqual(f"The --model_path does not exist: {missing}\n", stderr)

    def test_output_dir_is_a_file(self) -> None:
        return_code, _, stderr = run_main(
            self.model_path, idl_codegen.main.Target.PYTHON, self.model_path
        )

        self.assertEqual(1, return_code)
        self.assertEqual(
            f"The --output_dir does not point to a directory: {self.model_path}\n",
            stderr,
        )

    def test_invalid_model(self) -> None:
        self.model_path.write_text(
            json.dumps({"name": "Broken", "structs": [{"name": "A", "oops": 1}]}),
            encoding="utf-8",
        )

        return_code, stdout, stderr = run_main(
            self.model_path, idl_codegen.main.Target.PYTHON, self.output_dir
        )

        self.assertEqual(1, return_code)
        self.assertEqual("", stdout)
        self.assertTrue(
            stderr.startswith(f"Failed to load the schema from {self.model_path}:\n"),
            stderr,
        )
        self.assertIn("Unexpected property: 'oops'", stderr)

    def test_invalid_runtime_module(self) -> None:
        return_code, _, stderr = run_main(
            self.model_path,
            idl_codegen.main.Target.PYTHON,
            self.output_dir,
            runtime_module="not a module",
        )

        self.assertEqual(1, return_code)
        self.assertEqual(
            "The runtime module is not a valid qualified module name: "
            "'not a module'\n",
            stderr,
        )

    def test_schema_not_representable_in_python(self) -> None:
        self.model_path.write_text(
            json.dumps(
                {
                    "name": "Keywords",
                    "structs": [
                        {
                            "name": "Lesson",
                            "fields": [{"id": 1, "name": "class", "type": "i32"}],
                        }
                    ],
                }
            ),
            encoding="utf-8",
        )

        return_code, _, stderr = run_main(
            self.model_path, idl_codegen.main.Target.PYTHON, self.output_dir
        )

        self.assertEqual(1, return_code)
        self.assertTrue(
            stderr.startswith(
                f"Failed to generate the Python code based on {self.model_path}:\n"
            ),
            stderr,
        )
        self.assertIn("The identifier is a keyword in Python: 'class'", stderr)
        self.assertFalse(
            (self.output_dir / "ttypes.py").exists(),
            "Expected no files written on errors",
        )


if __name__ == "__main__":
    unittest.main()
