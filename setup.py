import os
import re
import setuptools
from typing import List


def get_content(file: str) -> str:
    with open(file, "r", encoding="utf-8") as f:
        return f.read()


def get_version(package: str) -> str:
    path = os.path.join(package, "__init__.py")
    return re.search("__version__ = ['\"]([^'\"]+)['\"]", get_content(path)).group(1)


def get_packages(package: str) -> List[str]:
    return [
        directory
        for directory, subdirectories, filenames in os.walk(package)
        if os.path.exists(os.path.join(directory, "__init__.py"))
    ]


setuptools.setup(
    name="crud_core",
    version=get_version("crud_core"),
    packages=get_packages("crud_core"),
    description="Generic CRUD REST API core with entity tag based optimistic concurrency",
    long_description=get_content("README.md"),
    long_description_content_type="text/markdown",
    license="GPLv3",
    install_requires=[
        "fastapi>=0.110,<1.0",
        "pydantic>=2.5,<3.0",
        "pydantic-settings>=2.2,<3.0",
        "SQLAlchemy>=2.0,<3.0",
        "uvicorn>=0.20.0,<1.0"
    ],
    extras_require={
        "full": [
            "ujson>=5.2,<6.0"
        ],
        "test": [
            "httpx>=0.24,<1.0",
            "pytest>=7.0"
        ]
    },
    entry_points={
        "console_scripts": ["crud_core = crud_core.__main__:main"]
    },
    project_urls={},
    python_requires=">=3.10",
    classifiers=[
        "Operating System :: OS Independent",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Development Status :: 3 - Alpha"
    ]
)
