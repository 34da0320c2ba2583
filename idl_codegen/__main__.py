"""Run idl-codegen as Python module."""

import idl_codegen.main

if __name__ == "__main__":
    # The ``prog`` needs to be set in the argparse.
    # Otherwise the program name in the help shown to the user will be ``__main__``.
    idl_codegen.main.main(prog="idl_codegen")
