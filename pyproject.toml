[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "wtr"
version = "0.1.0"
description = "Look up Rust crate documentation from docs.rs in the terminal"
requires-python = ">=3.10"
keywords = ["rust", "rustdoc", "docs.rs", "documentation", "cli"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Documentation",
]
dependencies = [
    "requests",
    "zstandard",
    "platformdirs",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
wtr = "wtr.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["wtr"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
