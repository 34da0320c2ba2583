"""Encapsulate the entry point to different generators."""
import io
import pathlib
import textwrap
from typing import Sequence, TextIO, Tuple, Optional, Mapping

from icontract import require, ensure

from idl_codegen import model
from idl_codegen.common import error_message


class Context:
    """Represent the context of a code generation."""

    @require(lambda model_path: model_path.exists() and model_path.is_file())
    @require(lambda output_dir: output_dir.exists() and output_dir.is_dir())
    def __init__(
        self,
        model_path: pathlib.Path,
        schema: model.Schema,
        output_dir: pathlib.Path,
        runtime_module: str = "thrift.Thrift",
    ) -> None:
        """Initialize with the given values."""
        self.model_path = model_path
        self.schema = schema
        self.output_dir = output_dir
        self.runtime_module = runtime_module


# fmt: off
@require(
    lambda errors: all(
        len(error) > 0 and not error.startswith("\n")
        # This is necessary so that we do not have double bullet point.
        and not error.startswith("*") and not error.endswith("\n")
        for error in errors
    )
)
@require(lambda message: not message.endswith(":"))
@require(lambda message: not message.endswith("\n"))
@require(lambda message: not message.startswith("\n") and not message.startswith("*"))
# fmt: on
def write_error_report(message: str, errors: Sequence[str], stderr: TextIO) -> None:
    """
    Write the report (main ``message`` and details as ``errors``) to ``stderr``.

    This method helps us to have a unified way of showing errors.
    """
    stderr.write(f"{message}:\n")
    for error in errors:
        indented = textwrap.indent(error, "  ")
        indented = "* " + indented[2:]
        stderr.write(f"{indented}\n")


@require(lambda model_path: model_path.exists() and model_path.is_file())
@ensure(lambda result: (result[0] is not None) ^ (result[1] is not None))
def load_model(
    model_path: pathlib.Path,
) -> Tuple[Optional[model.Schema], Optional[str]]:
    """Load the schema document from the file system and understand it."""
    schema, errors = model.load(model_path)
    if errors is not None:
        writer = io.StringIO()
        write_error_report(
            message=f"Failed to load the schema from {model_path}",
            errors=[error_message(error) for error in errors],
            stderr=writer,
        )
        return None, writer.getvalue()

    assert schema is not None

    return schema, None


@require(lambda files: all(not path.is_absolute() for path in files))
def write_files(
    files: Mapping[pathlib.Path, str],
    output_dir: pathlib.Path,
    stderr: TextIO,
) -> bool:
    """
    Write the generated ``files`` relative to the ``output_dir``.

    :return: True if all the files have been written
    """
    for rel_path, text in files.items():
        pth = output_dir / rel_path
        try:
            pth.parent.mkdir(parents=True, exist_ok=True)
            pth.write_text(text, encoding="utf-8")
        except Exception as exception:
            write_error_report(
                message=f"Failed to write to {pth}",
                errors=[str(exception)],
                stderr=stderr,
            )
            return False

    return True
