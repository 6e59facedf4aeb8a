#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from setuptools import setup, find_packages

setup(
    name="lfortran-lsp-accessor",
    version="0.1.0",
    description="Answers language-server requests by running the LFortran compiler",
    packages=find_packages(include=["lfortran_lsp", "lfortran_lsp.*"]),
    python_requires=">=3.11",
    install_requires=[
        "loguru>=0.5.0",
        "pydantic>=2.0",
        "aiofiles>=23.1.0",
        "lsprotocol>=2023.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-mock>=3.10.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "lfortran-lsp-accessor=lfortran_lsp.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Fortran",
        "Topic :: Software Development :: Compilers",
    ],
)
