"""
SpecForge - OpenAPI to SQL / routes / validation compiler
Install: pip install -e .
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="specforge",
    version="0.1.0",
    author="Diegoproggramer",
    author_email="",
    description="Compile OpenAPI documents into SQL DDL, route registrations and validation configs",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=("tests", "tests.*")),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Code Generators",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.0.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "runtime": [
            "fastapi>=0.100.0",
        ],
        "dev": [
            "pytest>=7.0",
            "sqlalchemy>=2.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "specforge=specforge.cli:cli_main",
        ],
    },
    keywords="openapi, compiler, sql, ddl, migrations, routes, validation",
)
