"""A setuptools based setup module.

See:
https://packaging.python.org/en/latest/distributing.html
https://github.com/pypa/sampleproject
"""
import os

from setuptools import find_packages, setup

# pylint: disable=redefined-builtin

here = os.path.abspath(os.path.dirname(__file__))

with open(os.path.join(here, "README.rst"), encoding="utf-8") as fid:
    long_description = fid.read()

with open(os.path.join(here, "requirements.txt"), encoding="utf-8") as fid:
    install_requires = [line for line in fid.read().splitlines() if line.strip()]

setup(
    name="idl-codegen",
    version="0.1.0",
    description=(
        "Generate serialization code, service stubs and schemas "
        "based on an IDL schema."
    ),
    long_description=long_description,
    author="The idl-codegen developers",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    license="License :: OSI Approved :: MIT License",
    keywords="idl code generation serialization rpc stubs xsd",
    packages=find_packages(exclude=["tests", "tests.*", "continuous_integration"]),
    install_requires=install_requires,
    extras_require={
        "dev": [
            "black==24.4.2",
            "mypy==1.10.0",
            "pylint==3.2.2",
            "coverage>=6.5.0,<8",
            "xmlschema>=3,<4",
        ],
    },
    package_data={"idl_codegen": ["py.typed"]},
    data_files=[(".", ["LICENSE", "README.rst", "requirements.txt"])],
    entry_points={
        "console_scripts": [
            "idl-codegen=idl_codegen.main:entry_point",
        ]
    },
)
