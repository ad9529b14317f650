[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "movierating"
version = "0.1.0"
description = "JSON HTTP backend for browsing, searching and rating movies held in an in-memory wide-column table, with an expiring cache"
requires-python = ">=3.10"
keywords = ["movies", "ratings", "http", "api", "flask", "cache", "wide-column"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "flask",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
movierating = "movierating.app:main"

[tool.hatch.build.targets.wheel]
packages = ["movierating"]

[tool.hatch.build.targets.sdist]
include = ["movierating", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
