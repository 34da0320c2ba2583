"""Generate the Python package with the data structures and the service stubs."""
import pathlib
from typing import TextIO, Tuple, Optional, List, Mapping, MutableMapping

from idl_codegen import emitting, model, run
from idl_codegen.common import Error, Identifier, Stripped, error_message
from idl_codegen.python import (
    common as python_common,
    constants as python_constants,
    naming as python_naming,
    service as python_service,
    structure as python_structure,
)

_TYPES_MODULE = Identifier("ttypes")


class PythonEmitter(emitting.Emitter):
    """
    Collect the Python code of a schema and assemble it into a package.

    The package consists of ``ttypes.py`` with the data structures,
    ``constants.py`` with the constants, one module per service and
    an ``__init__.py``.
    """

    #: Module providing ``TType``, ``TMessageType``, ``TException`` and
    #: ``TApplicationException`` to the generated code
    runtime_module: python_common.QualifiedModuleName

    def __init__(self, runtime_module: python_common.QualifiedModuleName) -> None:
        """Initialize with the given values."""
        self.runtime_module = runtime_module

        self._schema = None  # type: Optional[python_structure.VerifiedSchema]
        self._ontology = None  # type: Optional[model.ServiceOntology]
        self._context = python_common.ModuleContext()

        self._enums = []  # type: List[Stripped]
        self._structs = []  # type: List[Stripped]
        self._typedefs = []  # type: List[Stripped]
        self._constants = []  # type: List[Stripped]
        self._service_modules = dict()  # type: MutableMapping[Identifier, str]

    def open(self, schema: model.Schema) -> Optional[Error]:
        verified, errors = python_structure.verify(schema)
        if errors is not None:
            return Error(
                None,
                "The schema can not be represented in Python",
                errors,
            )

        ontology, errors = model.map_services_to_ontology(schema.services)
        if errors is not None:
            return Error(None, "Failed to map the inheritance of the services", errors)

        self._schema = verified
        self._ontology = ontology
        self._context = python_common.ModuleContext()

        self._enums = []
        self._structs = []
        self._typedefs = []
        self._constants = []
        self._service_modules = dict()

        return None

    def generate_typedef(self, typedef: model.Typedef) -> Optional[Error]:
        self._typedefs.append(python_structure.generate_typedef(typedef))
        return None

    def generate_enum(self, enumeration: model.Enumeration) -> Optional[Error]:
        self._enums.append(python_structure.generate_enum(enumeration))
        return None

    def generate_constant(self, constant: model.Constant) -> Optional[Error]:
        code, error = python_constants.generate_constant(constant, _TYPES_MODULE)
        if error is not None:
            return error

        assert code is not None
        self._constants.append(code)
        return None

    def generate_struct(self, struct: model.Struct) -> Optional[Error]:
        code, error = python_structure.generate_struct(struct, self._context)
        if error is not None:
            return error

        assert code is not None
        self._structs.append(code)
        return None

    def generate_exception(self, exception: model.Struct) -> Optional[Error]:
        return self.generate_struct(exception)

    def generate_service(self, service: model.Service) -> Optional[Error]:
        assert self._ontology is not None, "Expected open() to be called before"

        code, error = python_service.generate(
            service, self._ontology, self.runtime_module
        )
        if error is not None:
            return error

        assert code is not None
        self._service_modules[python_naming.service_module_name(service.name)] = code
        return None

    def close(self) -> Tuple[Optional[Mapping[pathlib.Path, str]], Optional[Error]]:
        assert self._schema is not None, "Expected open() to be called before"

        files = {
            pathlib.Path("ttypes.py"): python_structure.generate(
                enums=self._enums,
                structs=self._structs,
                typedefs=self._typedefs,
                runtime_module=self.runtime_module,
            ),
            pathlib.Path("constants.py"): python_constants.generate(self._constants),
        }  # type: MutableMapping[pathlib.Path, str]

        for module_name, code in self._service_modules.items():
            files[pathlib.Path(f"{module_name}.py")] = code

        module_names = ["constants", "ttypes"] + sorted(self._service_modules)
        all_block = ",\n".join(
            f"{python_common.INDENT}{python_common.string_literal(name)}"
            for name in module_names
        )

        files[pathlib.Path("__init__.py")] = (
            f'"""Provide the generated code of the schema {self._schema.name}."""\n'
            f"\n"
            f"{python_common.WARNING}\n"
            f"\n"
            f"__all__ = [\n{all_block},\n]\n"
            f"\n"
            f"{python_common.WARNING}\n"
        )

        return files, None


def execute(context: run.Context, stdout: TextIO, stderr: TextIO) -> int:
    """Generate the code."""
    if not python_common.QUALIFIED_MODULE_NAME_RE.fullmatch(context.runtime_module):
        stderr.write(
            f"The runtime module is not a valid qualified module name: "
            f"{context.runtime_module!r}\n"
        )
        return 1

    emitter = PythonEmitter(
        runtime_module=python_common.QualifiedModuleName(context.runtime_module)
    )

    files, error = emitting.emit(context.schema, emitter)
    if error is not None:
        run.write_error_report(
            message=f"Failed to generate the Python code based on {context.model_path}",
            errors=[error_message(error)],
            stderr=stderr,
        )
        return 1

    assert files is not None

    if not run.write_files(files, context.output_dir, stderr):
        return 1

    stdout.write(f"Code generated to: {context.output_dir}\n")
    return 0
