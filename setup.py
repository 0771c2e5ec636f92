# Copyright 2026 Canonical Ltd.  This software is licensed under the
# GNU Affero General Public License version 3 (see the file LICENSE).

"""Setuptools installer for the identity bridge."""

from os.path import dirname, join

from setuptools import find_packages, setup


def read(filename):
    """Return the whitespace-stripped content of `filename`."""
    path = join(dirname(__file__), filename)
    with open(path, "r") as fin:
        return fin.read().strip()


setup(
    name="idbridge",
    version="1.0.0",
    license="AGPLv3",
    description="Certificate trust and challenge broker for ORY Hydra and Vault",
    long_description=read("README.rst"),
    author="idbridge Developers",
    packages=find_packages(where="src", exclude=["tests", "tests.*"]),
    package_dir={"": "src"},
    package_data={"idbridgeapiserver": ["templates/*.html"]},
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=[
        "aiohttp<3.14",
        "authlib",
        "cryptography",
        "django",
        "fastapi<0.137",
        "formencode",
        "httpx",
        "pydantic>=2",
        "python-json-logger",
        "python-multipart",
        "pyyaml",
        "sqlalchemy[asyncio]>=2",
        "asyncpg",
        "structlog",
        "uvicorn",
    ],
    extras_require={
        "testing": [
            "aioresponses",
            "pytest",
            "pytest-asyncio",
            "pytest-mock",
        ],
    },
    entry_points={
        "console_scripts": [
            "idbridge-apiserver = idbridgeapiserver.main:run",
        ]
    },
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: GNU Affero General Public License v3",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Topic :: System :: Systems Administration :: Authentication/Directory",
    ],
)
