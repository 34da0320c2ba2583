"""Provide the interface shared by all the emitters and drive them over a schema."""
import abc
import pathlib
from typing import Mapping, Optional, Tuple

from icontract import ensure

from idl_codegen import model
from idl_codegen.common import Error


class Emitter(abc.ABC):
    """
    Generate the output of a target, one schema entity at a time.

    The emitter collects its output in memory. The files are only handed over
    in :py:meth:`close`, so that nothing is written if any entity fails.
    """

    @abc.abstractmethod
    def open(self, schema: model.Schema) -> Optional[Error]:
        """Prepare the generation of the ``schema`` and verify it for the target."""
        raise NotImplementedError()

    @abc.abstractmethod
    def generate_typedef(self, typedef: model.Typedef) -> Optional[Error]:
        """Generate the code for the ``typedef``."""
        raise NotImplementedError()

    @abc.abstractmethod
    def generate_enum(self, enumeration: model.Enumeration) -> Optional[Error]:
        """Generate the code for the ``enumeration``."""
        raise NotImplementedError()

    @abc.abstractmethod
    def generate_constant(self, constant: model.Constant) -> Optional[Error]:
        """Generate the code for the ``constant``."""
        raise NotImplementedError()

    @abc.abstractmethod
    def generate_struct(self, struct: model.Struct) -> Optional[Error]:
        """Generate the code for the ``struct``."""
        raise NotImplementedError()

    @abc.abstractmethod
    def generate_exception(self, exception: model.Struct) -> Optional[Error]:
        """Generate the code for the ``exception``."""
        raise NotImplementedError()

    @abc.abstractmethod
    def generate_service(self, service: model.Service) -> Optional[Error]:
        """Generate the code for the ``service``."""
        raise NotImplementedError()

    @abc.abstractmethod
    def close(self) -> Tuple[Optional[Mapping[pathlib.Path, str]], Optional[Error]]:
        """
        Finish the generation.

        :return: map relative path 🠒 content of the file, or the error
        """
        raise NotImplementedError()


# fmt: off
@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
@ensure(
    lambda result:
    not (result[0] is not None)
    or all(not path.is_absolute() for path in result[0])
)
# fmt: on
def emit(
    schema: model.Schema, emitter: Emitter
) -> Tuple[Optional[Mapping[pathlib.Path, str]], Optional[Error]]:
    """
    Feed the ``schema`` to the ``emitter`` entity by entity.

    The typedefs come first, followed by the enumerations, the constants, the structs
    and exceptions in order of declaration, and finally the services. The first
    error aborts the generation.
    """
    error = emitter.open(schema)
    if error is not None:
        return None, error

    for typedef in schema.typedefs:
        error = emitter.generate_typedef(typedef)
        if error is not None:
            return None, error

    for enumeration in schema.enumerations:
        error = emitter.generate_enum(enumeration)
        if error is not None:
            return None, error

    for constant in schema.constants:
        error = emitter.generate_constant(constant)
        if error is not None:
            return None, error

    for struct in schema.structs:
        if struct.is_exception:
            error = emitter.generate_exception(struct)
        else:
            error = emitter.generate_struct(struct)

        if error is not None:
            return None, error

    for service in schema.services:
        error = emitter.generate_service(service)
        if error is not None:
            return None, error

    return emitter.close()
