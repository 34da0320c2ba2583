"""Generate serialization code, service stubs and schemas based on an IDL schema."""

import argparse
import enum
import pathlib
import sys
from typing import TextIO

import idl_codegen
import idl_codegen.python.main as python_main
import idl_codegen.xsd.main as xsd_main
from idl_codegen import run
from idl_codegen.common import assert_never

assert idl_codegen.__doc__ == __doc__


class Target(enum.Enum):
    """List available targets."""

    PYTHON = "python"
    XSD = "xsd"


class Parameters:
    """Represent the program parameters."""

    def __init__(
        self,
        model_path: pathlib.Path,
        target: Target,
        output_dir: pathlib.Path,
        runtime_module: str = "thrift.Thrift",
    ) -> None:
        """Initialize with the given values."""
        self.model_path = model_path
        self.target = target
        self.output_dir = output_dir
        self.runtime_module = runtime_module


def execute(params: Parameters, stdout: TextIO, stderr: TextIO) -> int:
    """Run the program."""
    # region Basic checks

    if not params.model_path.exists():
        stderr.write(f"The --model_path does not exist: {params.model_path}\n")
        return 1

    if not params.model_path.is_file():
        stderr.write(
            f"The --model_path does not point to a file: {params.model_path}\n"
        )
        return 1

    if not params.output_dir.exists():
        params.output_dir.mkdir(parents=True, exist_ok=True)
    else:
        if not params.output_dir.is_dir():
            stderr.write(
                f"The --output_dir does not point to a directory: "
                f"{params.output_dir}\n"
            )
            return 1

    # endregion

    # region Load

    schema, error_message = run.load_model(model_path=params.model_path)
    if error_message is not None:
        stderr.write(error_message)
        return 1

    assert schema is not None

    # endregion

    # region Dispatch

    run_context = run.Context(
        model_path=params.model_path,
        schema=schema,
        output_dir=params.output_dir,
        runtime_module=params.runtime_module,
    )

    if params.target is Target.PYTHON:
        return python_main.execute(context=run_context, stdout=stdout, stderr=stderr)

    elif params.target is Target.XSD:
        return xsd_main.execute(context=run_context, stdout=stdout, stderr=stderr)

    else:
        assert_never(params.target)

    # endregion

    raise AssertionError("Should not have gotten here")


def main(prog: str) -> int:
    """
    Execute the main routine.

    :param prog: name of the program to be displayed in the help
    :return: exit code
    """
    parser = argparse.ArgumentParser(prog=prog, description=__doc__)
    parser.add_argument(
        "--model_path", help="path to the schema as a JSON document", required=True
    )
    parser.add_argument(
        "--output_dir", help="path to the generated code", required=True
    )
    parser.add_argument(
        "--target",
        help="target language or schema",
        required=True,
        choices=[literal.value for literal in Target],
    )
    parser.add_argument(
        "--runtime_module",
        help=(
            "qualified name of the Python module providing the protocol runtime "
            "to the generated code"
        ),
        default="thrift.Thrift",
    )
    parser.add_argument(
        "--version", help="show the current version and exit", action="store_true"
    )

    # NOTE: The module ``argparse`` is not flexible enough to understand special
    # options such as ``--version`` so we manually hard-wire.
    if "--version" in sys.argv and "--help" not in sys.argv:
        print(idl_codegen.__version__)
        return 0

    args = parser.parse_args()

    target_to_str = {literal.value: literal for literal in Target}

    params = Parameters(
        model_path=pathlib.Path(args.model_path),
        target=target_to_str[args.target],
        output_dir=pathlib.Path(args.output_dir),
        runtime_module=args.runtime_module,
    )

    return execute(params=params, stdout=sys.stdout, stderr=sys.stderr)


def entry_point() -> int:
    """Provide an entry point for a console script."""
    return main(prog="idl-codegen")


if __name__ == "__main__":
    sys.exit(main(prog="idl-codegen"))
