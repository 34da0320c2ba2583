"""Provide common functionality across different tests."""
import importlib
import json
import pathlib
import sys
import tempfile
import types
import uuid
from typing import Any, List, Mapping, MutableMapping, Sequence, Union

from idl_codegen import emitting, model
from idl_codegen.common import Error, error_message
from idl_codegen.python import (
    common as python_common,
    main as python_main,
    naming as python_naming,
)

# pylint: disable=missing-function-docstring

#: Qualified name of the in-memory runtime used by the generated code in the tests
RUNTIME_MODULE = python_common.QualifiedModuleName("tests.runtime")


def most_underlying_messages(error_or_errors: Union[Error, Sequence[Error]]) -> str:
    """Find the "leaf" errors and render them as a new-line separated list."""
    if isinstance(error_or_errors, Error):
        errors = [error_or_errors]  # type: Sequence[Error]
    else:
        errors = error_or_errors

    most_underlying_errors = []  # type: List[Error]

    for error in errors:
        if error.underlying is None or len(error.underlying) == 0:
            most_underlying_errors.append(error)
            continue

        stack = list(error.underlying)  # type: List[Error]

        while len(stack) > 0:
            top_error = stack.pop()

            if top_error.underlying is not None:
                stack.extend(top_error.underlying)

            if top_error.underlying is None or len(top_error.underlying) == 0:
                most_underlying_errors.append(top_error)

    return "\n".join(
        most_underlying_error.message
        for most_underlying_error in most_underlying_errors
    )


def must_load(jsonable: Mapping[str, Any]) -> model.Schema:
    """Load the schema from the ``jsonable`` or fail the test."""
    schema, errors = model.load_from_text(json.dumps(jsonable))
    if errors is not None:
        raise AssertionError(
            "Failed to load the schema:\n"
            + "\n".join(error_message(error) for error in errors)
        )

    assert schema is not None
    return schema


def must_generate_python(schema: model.Schema) -> Mapping[pathlib.Path, str]:
    """Generate the Python package for the ``schema`` or fail the test."""
    files, error = emitting.emit(
        schema, python_main.PythonEmitter(runtime_module=RUNTIME_MODULE)
    )
    if error is not None:
        raise AssertionError(
            f"Failed to generate the Python code:\n{error_message(error)}"
        )

    assert files is not None
    return files


class GeneratedPackage:
    """Provide the modules of a generated Python package."""

    def __init__(
        self, ttypes: types.ModuleType, constants: types.ModuleType
    ) -> None:
        self.ttypes = ttypes
        self.constants = constants
        self.services = dict()  # type: MutableMapping[str, types.ModuleType]

    def service(self, name: str) -> types.ModuleType:
        """Retrieve the module of the service with the schema ``name``."""
        return self.services[name]


def import_generated(schema: model.Schema) -> GeneratedPackage:
    """
    Generate the Python package for the ``schema`` and import it.

    The package gets a unique name so that the imports do not interfere
    across the tests.
    """
    files = must_generate_python(schema)

    package_name = f"generated_{uuid.uuid4().hex}"

    with tempfile.TemporaryDirectory() as tmp_dir:
        package_dir = pathlib.Path(tmp_dir) / package_name
        for rel_path, text in files.items():
            pth = package_dir / rel_path
            pth.parent.mkdir(parents=True, exist_ok=True)
            pth.write_text(text, encoding="utf-8")

        sys.path.insert(0, tmp_dir)
        importlib.invalidate_caches()
        try:
            importlib.import_module(package_name)
            result = GeneratedPackage(
                ttypes=importlib.import_module(f"{package_name}.ttypes"),
                constants=importlib.import_module(f"{package_name}.constants"),
            )

            for service in schema.services:
                module_name = python_naming.service_module_name(service.name)
                result.services[service.name] = importlib.import_module(
                    f"{package_name}.{module_name}"
                )
        finally:
            sys.path.remove(tmp_dir)

    return result
