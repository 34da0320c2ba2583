#!/usr/bin/env python3

"""Check that the distribution and idl_codegen/__init__.py are in sync."""
import os
import pathlib
import subprocess
import sys
from typing import Optional, Mapping

import idl_codegen

#: Map development-status classifier 🠒 expected ``__status__`` in the package
_STATUS_MAP = {
    "Development Status :: 1 - Planning": "Planning",
    "Development Status :: 2 - Pre-Alpha": "Pre-Alpha",
    "Development Status :: 3 - Alpha": "Alpha",
    "Development Status :: 4 - Beta": "Beta",
    "Development Status :: 5 - Production/Stable": "Production/Stable",
    "Development Status :: 6 - Mature": "Mature",
    "Development Status :: 7 - Inactive": "Inactive",
}


def _query_setup_py(setup_py_pth: pathlib.Path, field: str) -> str:
    """Ask ``setup.py`` for the value of the ``field``."""
    return subprocess.check_output(
        [sys.executable, str(setup_py_pth), f"--{field}"], encoding="utf-8"
    ).strip()


def main() -> int:
    """Execute the main routine."""
    repo_root = pathlib.Path(os.path.realpath(__file__)).parent.parent

    setup_py_pth = repo_root / "setup.py"
    if not setup_py_pth.exists():
        raise RuntimeError(f"Could not find the setup.py: {setup_py_pth}")

    success = True

    # Field in setup.py 🠒 value in __init__.py
    expected_in_init = {
        "version": idl_codegen.__version__,
        "author": idl_codegen.__author__,
        "license": idl_codegen.__license__,
        "description": idl_codegen.__doc__,
    }  # type: Mapping[str, Optional[str]]

    for field, in_init in expected_in_init.items():
        in_setup_py = _query_setup_py(setup_py_pth, field)

        if in_setup_py != in_init:
            print(
                f"The {field} in the setup.py is {in_setup_py!r}, "
                f"while the {field} in idl_codegen/__init__.py is: {in_init!r}",
                file=sys.stderr,
            )
            success = False

    status_classifier = None  # type: Optional[str]
    for classifier in _query_setup_py(setup_py_pth, "classifiers").splitlines():
        if classifier in _STATUS_MAP:
            status_classifier = classifier
            break

    if status_classifier is None:
        print(
            "Expected a status classifier in setup.py "
            "(e.g., 'Development Status :: 3 - Alpha'), but found none.",
            file=sys.stderr,
        )
        success = False
    elif _STATUS_MAP[status_classifier] != idl_codegen.__status__:
        print(
            f"Expected status {_STATUS_MAP[status_classifier]} "
            f"according to setup.py in idl_codegen/__init__.py, "
            f"but found: {idl_codegen.__status__}",
            file=sys.stderr,
        )
        success = False

    if not success:
        return -1

    return 0


if __name__ == "__main__":
    sys.exit(main())
