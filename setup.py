"""
Setuptools build script for gencmd.

This file allows installation of the ``gencmd`` package via
``pip install .``.  It declares the required dependencies and
registers a console script entry point named ``gencmd``.  When
installed, users can invoke the tool with ``gencmd`` from their shell.

Test dependencies are available through the ``test`` extra:
``pip install -e .[test]``.
"""

from setuptools import setup, find_packages

setup(
    name="gencmd",
    version="0.1.0",
    description="Generate shell commands from natural language descriptions",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "click>=7.0",
        "PyYAML>=5.4",
        "prompt_toolkit>=3.0.29",
        "loguru>=0.6",
        "python-dotenv>=1.0",
        "openai>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "gencmd=gencmd.cli:main",
        ],
    },
    include_package_data=True,
    package_data={"gencmd": ["data/examples.json", "data/key-bindings.bash", "data/key-bindings.zsh"]},
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
